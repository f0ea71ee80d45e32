"""Scripted session replay.

Exports ``load_session`` and ``SessionRunner`` for replaying a YAML/JSON
list of engine operations.
"""
from __future__ import annotations

from voteflow.session.script import (
    OPERATIONS,
    OperationSpec,
    ScriptError,
    ScriptStep,
    Session,
    SessionRunner,
    StepResult,
    load_session,
)

__all__ = [
    "load_session",
    "Session",
    "SessionRunner",
    "ScriptStep",
    "StepResult",
    "ScriptError",
    "OperationSpec",
    "OPERATIONS",
]
