"""Generic retry-until-expected helper for ECS API calls."""

import asyncio
import logging
from enum import Enum

from ecsbake.client.api import ApiError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_TIMES = 12
DEFAULT_RETRY_INTERVAL = 5
SHORT_RETRY_TIMES = 3


class WaitResult(Enum):
    """Verdict of an evaluation function on one attempt."""

    SUCCESS = "success"
    RETRY = "retry"
    FAIL = "fail"


class WaitError(Exception):
    """Retry budget exhausted, or a failing evaluation without an error."""


def eval_could_retry_response(retry_codes):
    """Build an evaluator that retries only on the given vendor error codes.

    No error -> SUCCESS; ApiError with a code in *retry_codes* -> RETRY;
    anything else -> FAIL.
    """
    retry_codes = frozenset(retry_codes)

    def _eval(response, error):
        if error is None:
            return WaitResult.SUCCESS
        if isinstance(error, ApiError) and error.code in retry_codes:
            return WaitResult.RETRY
        return WaitResult.FAIL

    return _eval


async def wait_for_expected(request_fn, eval_fn, retry_times=0, retry_interval=0, retry_timeout=0):
    """Call *request_fn* until *eval_fn* accepts the outcome.

    Args:
        request_fn: async callable() -> response.
        eval_fn: callable(response, error) -> WaitResult.
        retry_times: maximum attempts (non-positive -> DEFAULT_RETRY_TIMES).
            Ignored when *retry_timeout* is set.
        retry_interval: seconds between attempts (non-positive -> DEFAULT_RETRY_INTERVAL).
        retry_timeout: if positive, retry until this many seconds have passed.

    Returns:
        The accepted response.

    Raises:
        The request's own exception when eval_fn returns FAIL for it.
        WaitError when the budget is exhausted (chained to the last error).
    """
    if retry_times <= 0:
        retry_times = DEFAULT_RETRY_TIMES
    if retry_interval <= 0:
        retry_interval = DEFAULT_RETRY_INTERVAL

    loop = asyncio.get_running_loop()
    deadline = loop.time() + retry_timeout if retry_timeout > 0 else None

    last_error = None
    attempt = 0
    while True:
        if deadline is not None and loop.time() > deadline:
            break
        if deadline is None and attempt >= retry_times:
            break
        attempt += 1

        response = None
        error = None
        try:
            response = await request_fn()
        except Exception as e:
            error = e
        last_error = error

        result = eval_fn(response, error)
        if result is WaitResult.SUCCESS:
            return response
        if result is WaitResult.FAIL:
            if error is not None:
                raise error
            raise WaitError(f"evaluation failed on attempt {attempt}")

        logger.debug(f"Attempt {attempt} not ready ({error or 'unexpected response'}), retrying in {retry_interval}s")
        await asyncio.sleep(retry_interval)

    reason = last_error or "<no error>"
    if deadline is not None:
        raise WaitError(
            f"evaluate failed after {retry_timeout}s timeout with {retry_interval}s retry interval: {reason}"
        ) from last_error
    raise WaitError(
        f"evaluate failed after {retry_times} times retry with {retry_interval}s retry interval: {reason}"
    ) from last_error
