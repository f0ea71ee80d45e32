"""Snapshot persistence helpers.

Exports ``SnapshotSerializer`` for converting engine snapshots to and
from dict, JSON and YAML.
"""
from __future__ import annotations

from voteflow.snapshot.serializer import FORMAT_VERSION, SnapshotSerializer

__all__ = ["SnapshotSerializer", "FORMAT_VERSION"]
