"""Integration tests.

Integration tests drive the whole engine through its public API, across
threads and across snapshot restarts. They are kept in a separate
directory so they can be excluded from the fast unit-test run with
``pytest tests/unit/``.
"""
from __future__ import annotations
