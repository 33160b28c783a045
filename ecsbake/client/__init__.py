"""ECS API client: signed transport, retry helper, instance operations."""

from ecsbake.client.api import ApiError, EcsApi
from ecsbake.client.requests import CreateInstanceRequest, DataDisk
from ecsbake.client.wait import (
    WaitError,
    WaitResult,
    eval_could_retry_response,
    wait_for_expected,
)
from ecsbake.client.wrapper import ClientWrapper, instance_list

__all__ = [
    "ApiError",
    "EcsApi",
    "CreateInstanceRequest",
    "DataDisk",
    "WaitError",
    "WaitResult",
    "eval_could_retry_response",
    "wait_for_expected",
    "ClientWrapper",
    "instance_list",
]
