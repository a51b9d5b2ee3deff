from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from zero_engine.errors import TurnRejectedError

DRAFT_MARKER = "[Draft]"
FINAL_OUTPUT_MARKER = "[Final Output]"


class Stage(str, Enum):
    INITIALIZING = "initializing"
    AWAITING_TASK = "awaiting_task"
    PROCESSING = "processing"
    AWAITING_CRITIQUE = "awaiting_critique"
    ERROR = "error"


@dataclass(frozen=True)
class EngineStatus:
    label: str
    active: bool


_STATUS = {
    Stage.INITIALIZING: EngineStatus("Initializing", True),
    Stage.AWAITING_TASK: EngineStatus("Awaiting Task", False),
    Stage.PROCESSING: EngineStatus("Processing...", True),
    Stage.AWAITING_CRITIQUE: EngineStatus("Awaiting Critique", True),
    Stage.ERROR: EngineStatus("Engine Error", True),
}


def engine_status(stage: Stage) -> EngineStatus:
    return _STATUS.get(stage, EngineStatus("Standby", False))


def stage_after_response(response_text: str, *, chain_mode: bool, meta_question: bool) -> Stage:
    """Where a completed turn lands.

    Only a standard-mode, non-meta response that offers a draft without a
    final output waits for critique.
    """
    if meta_question or chain_mode:
        return Stage.AWAITING_TASK
    if DRAFT_MARKER in response_text and FINAL_OUTPUT_MARKER not in response_text:
        return Stage.AWAITING_CRITIQUE
    return Stage.AWAITING_TASK


class ProtocolStateMachine:
    def __init__(self) -> None:
        self._stage = Stage.INITIALIZING

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def is_loading(self) -> bool:
        return self._stage in (Stage.INITIALIZING, Stage.PROCESSING)

    @property
    def accepts_input(self) -> bool:
        return self._stage in (Stage.AWAITING_TASK, Stage.AWAITING_CRITIQUE)

    def mark_ready(self) -> None:
        self._move(Stage.AWAITING_TASK)

    def fail(self) -> None:
        self._move(Stage.ERROR)

    def reset(self) -> None:
        """Back to awaiting a task, e.g. after switching to another session."""
        if self._stage == Stage.PROCESSING:
            raise TurnRejectedError("Cannot switch sessions while a turn is in flight")
        self._move(Stage.AWAITING_TASK)

    def begin_turn(self, text: str, *, has_attachment: bool = False) -> Stage:
        """Enter ``processing`` and return the stage the turn started from."""
        if not self.accepts_input:
            raise TurnRejectedError(
                f"Cannot accept input while {self._stage.value}",
                {"stage": self._stage.value},
            )
        if not text.strip() and not has_attachment:
            raise TurnRejectedError("Nothing to submit")
        started_from = self._stage
        self._move(Stage.PROCESSING)
        return started_from

    def complete_turn(self, response_text: str, *, chain_mode: bool, meta_question: bool) -> Stage:
        self._require_processing()
        self._move(stage_after_response(response_text, chain_mode=chain_mode, meta_question=meta_question))
        return self._stage

    def fail_turn(self) -> Stage:
        self._require_processing()
        self._move(Stage.AWAITING_TASK)
        return self._stage

    def _require_processing(self) -> None:
        if self._stage != Stage.PROCESSING:
            raise RuntimeError(f"No turn in flight (stage={self._stage.value})")

    def _move(self, stage: Stage) -> None:
        if stage != self._stage:
            logger.debug(f"Stage {self._stage.value} -> {stage.value}")
        self._stage = stage
