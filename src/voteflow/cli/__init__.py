"""CLI package.

The ``cli`` sub-package contains the Click application and its commands.
It drives the engine only through the public ``voteflow.workflow``,
``voteflow.snapshot`` and ``voteflow.session`` APIs.
"""
from __future__ import annotations
