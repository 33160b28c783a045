"""Step contract shared by build steps."""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from ecsbake.state import BuildState

logger = logging.getLogger(__name__)


class StepAction(Enum):
    CONTINUE = "continue"
    HALT = "halt"


class Step(ABC):
    """A unit of the build pipeline with a best-effort cleanup."""

    @abstractmethod
    async def run(self, state: BuildState) -> StepAction: ...

    @abstractmethod
    async def cleanup(self, state: BuildState) -> None: ...


def halt(state: BuildState, err: Exception, prefix: str = "") -> StepAction:
    """Record *err* on the state, log it, and tell the runner to stop."""
    state.error = err
    logger.error(f"{prefix}: {err}" if prefix else str(err))
    return StepAction.HALT


def cleanup_message(state: BuildState, resource: str) -> None:
    """Log why *resource* is being removed."""
    if state.cancelled:
        logger.info(f"Deleting {resource} because of cancellation...")
    elif state.halted:
        logger.info(f"Deleting {resource} because of an error...")
    else:
        logger.info(f"Cleaning up '{resource}'...")
