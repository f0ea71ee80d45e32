"""Scripted voting sessions.

A session script is a YAML (or JSON) document that lists engine
operations to replay in order.  It is the boundary layer used by the
``voteflow run`` command and is handy for fixtures and demos.

Format
------
::

    administrator: admin
    steps:
      - register_voter: {principal: alice}
      - start_proposals_registering: {}
      - submit_proposal: {caller: alice, description: Build a park}
      - advance: {}
      - advance: {}
      - cast_vote: {caller: alice, proposal_id: 1}
      - end_voting_session: {}
      - tally_votes: {}

Each step is a single-key mapping from an operation name to its
arguments.  ``caller`` defaults to the engine's administrator.

Usage
-----
::

    from voteflow.session import SessionRunner, load_session

    session = load_session(text)
    engine = session.create_engine()
    results = SessionRunner().run(engine, session.steps)
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import yaml

from voteflow.workflow.engine import WorkflowEngine
from voteflow.workflow.errors import VotingError
from voteflow.workflow.events import EventBus

logger = logging.getLogger(__name__)


class ScriptError(Exception):
    """Raised when a session script is malformed.

    Parameters
    ----------
    message:
        What is wrong.
    step_index:
        0-based index of the offending step, or ``None`` for document-level
        problems.
    """

    def __init__(self, message: str, step_index: int | None = None) -> None:
        self.step_index = step_index
        if step_index is not None:
            message = f"step {step_index + 1}: {message}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Operation table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationSpec:
    """Signature of an engine operation callable from a script.

    Parameters
    ----------
    method:
        ``WorkflowEngine`` method name.
    arguments:
        Required argument names and their types, in call order.
    """

    method: str
    arguments: tuple[tuple[str, type], ...] = ()


OPERATIONS: dict[str, OperationSpec] = {
    "register_voter": OperationSpec("register_voter", (("principal", str),)),
    "start_proposals_registering": OperationSpec("start_proposals_registering"),
    "end_proposals_registering": OperationSpec("end_proposals_registering"),
    "start_voting_session": OperationSpec("start_voting_session"),
    "end_voting_session": OperationSpec("end_voting_session"),
    "tally_votes": OperationSpec("tally_votes"),
    "advance": OperationSpec("advance"),
    "submit_proposal": OperationSpec("submit_proposal", (("description", str),)),
    "cast_vote": OperationSpec("cast_vote", (("proposal_id", int),)),
    "get_voter": OperationSpec("get_voter", (("principal", str),)),
    "get_proposal": OperationSpec("get_proposal", (("proposal_id", int),)),
    "list_proposals": OperationSpec("list_proposals"),
    "get_winning_proposal": OperationSpec("get_winning_proposal"),
}


# ---------------------------------------------------------------------------
# Script model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScriptStep:
    """One operation in a session script.

    Parameters
    ----------
    operation:
        Key into ``OPERATIONS``.
    caller:
        Calling principal; ``None`` means the engine's administrator.
    arguments:
        Positional arguments after ``caller``, in ``OperationSpec`` order.
    """

    operation: str
    caller: str | None = None
    arguments: tuple[Any, ...] = ()

    def __str__(self) -> str:
        args = ", ".join(repr(a) for a in self.arguments)
        who = self.caller if self.caller is not None else "<administrator>"
        return f"{who}: {self.operation}({args})"


@dataclass(frozen=True)
class Session:
    """A parsed session script."""

    administrator: str | None
    steps: tuple[ScriptStep, ...] = field(default_factory=tuple)

    def create_engine(self, bus: EventBus | None = None) -> WorkflowEngine:
        """Build a fresh engine for this session's administrator.

        Raises
        ------
        ScriptError
            If the script does not name an administrator.
        """
        if not self.administrator:
            raise ScriptError("script does not declare an administrator")
        return WorkflowEngine(self.administrator, bus=bus)


def _parse_step(index: int, raw: Any) -> ScriptStep:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise ScriptError("each step must be a mapping with exactly one operation", index)
    (operation, params), = raw.items()
    spec = OPERATIONS.get(operation)
    if spec is None:
        known = ", ".join(sorted(OPERATIONS))
        raise ScriptError(f"unknown operation {operation!r} (known: {known})", index)
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise ScriptError(f"arguments of {operation!r} must be a mapping", index)

    params = dict(params)
    caller = params.pop("caller", None)
    if caller is not None and not isinstance(caller, str):
        raise ScriptError("caller must be a string", index)

    arguments: list[Any] = []
    for name, expected in spec.arguments:
        if name not in params:
            raise ScriptError(f"{operation!r} requires argument {name!r}", index)
        value = params.pop(name)
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ScriptError(
                f"argument {name!r} of {operation!r} must be {expected.__name__}", index
            )
        arguments.append(value)
    if params:
        extra = ", ".join(sorted(str(k) for k in params))
        raise ScriptError(f"unexpected argument(s) for {operation!r}: {extra}", index)
    return ScriptStep(operation=operation, caller=caller, arguments=tuple(arguments))


def load_session(text: str) -> Session:
    """Parse a YAML or JSON session script.

    Raises
    ------
    ScriptError
        If the document is not valid YAML or does not follow the script
        format.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ScriptError(f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ScriptError("script must be a mapping with a 'steps' list")

    administrator = data.get("administrator")
    if administrator is not None and not isinstance(administrator, str):
        raise ScriptError("administrator must be a string")
    raw_steps = data.get("steps") or []
    if not isinstance(raw_steps, list):
        raise ScriptError("'steps' must be a list")
    steps = tuple(_parse_step(i, raw) for i, raw in enumerate(raw_steps))
    return Session(administrator=administrator, steps=steps)


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepResult:
    """Outcome of one replayed step."""

    step: ScriptStep
    value: Any = None
    error: VotingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        if self.value is None:
            return "ok"
        return repr(self.value)


class SessionRunner:
    """Replays ``ScriptStep`` objects against a ``WorkflowEngine``.

    Parameters
    ----------
    keep_going:
        When ``False`` (default) replay stops at the first failing step.
    """

    def __init__(self, keep_going: bool = False) -> None:
        self._keep_going = keep_going

    def run_step(self, engine: WorkflowEngine, step: ScriptStep) -> StepResult:
        """Apply a single step; engine errors are captured, not raised."""
        spec = OPERATIONS[step.operation]
        caller = step.caller if step.caller is not None else engine.administrator
        method = getattr(engine, spec.method)
        try:
            value = method(caller, *step.arguments)
        except VotingError as exc:
            logger.warning("Step %s failed: %s", step, exc)
            return StepResult(step=step, error=exc)
        logger.debug("Step %s succeeded", step)
        return StepResult(step=step, value=value)

    def run(self, engine: WorkflowEngine, steps: Sequence[ScriptStep]) -> list[StepResult]:
        """Apply ``steps`` in order and return one result per attempted step."""
        results: list[StepResult] = []
        for step in steps:
            result = self.run_step(engine, step)
            results.append(result)
            if not result.ok and not self._keep_going:
                break
        return results
