"""Build pipeline steps."""

from ecsbake.steps.base import Step, StepAction, cleanup_message, halt
from ecsbake.steps.create_instance import (
    CREATE_INSTANCE_RETRY_ERRORS,
    DELETE_INSTANCE_RETRY_ERRORS,
    CreateInstanceStep,
)

__all__ = [
    "Step",
    "StepAction",
    "halt",
    "cleanup_message",
    "CreateInstanceStep",
    "CREATE_INSTANCE_RETRY_ERRORS",
    "DELETE_INSTANCE_RETRY_ERRORS",
]
