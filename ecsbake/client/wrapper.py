"""ECS client wrapper: instance API calls plus retry and status polling."""

import json
import logging

from ecsbake.client.api import EcsApi
from ecsbake.client.requests import CreateInstanceRequest
from ecsbake.client.wait import (
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_RETRY_TIMES,
    SHORT_RETRY_TIMES,
    WaitResult,
    wait_for_expected,
)

logger = logging.getLogger(__name__)


class ClientWrapper:
    """Instance operations over an EcsApi, with configured retry budgets."""

    def __init__(
        self,
        api: EcsApi,
        retry_times=DEFAULT_RETRY_TIMES,
        retry_interval=DEFAULT_RETRY_INTERVAL,
        short_retry_times=SHORT_RETRY_TIMES,
        status_timeout=600,
    ):
        self.api = api
        self.retry_times = retry_times
        self.retry_interval = retry_interval
        self.short_retry_times = short_retry_times
        self.status_timeout = status_timeout

    @classmethod
    def from_config(cls, config, http_client=None) -> "ClientWrapper":
        api = EcsApi(
            access_key=config.access_key,
            secret_key=config.secret_key,
            region_id=config.region,
            endpoint=config.endpoint,
            department=config.department,
            resource_group=config.resource_group,
            http_client=http_client,
        )
        return cls(
            api,
            retry_times=config.retry.retry_times,
            retry_interval=config.retry.retry_interval,
            short_retry_times=config.retry.short_retry_times,
            status_timeout=config.retry.instance_status_timeout,
        )

    # ── API calls ─────────────────────────────────────────────────

    async def create_instance(self, request: CreateInstanceRequest) -> dict:
        """CreateInstance. Returns the response dict (``InstanceId``, ``RequestId``)."""
        return await self.api.call("CreateInstance", request.to_params())

    async def describe_instances(self, instance_ids, region_id=None) -> dict:
        """DescribeInstances filtered by id."""
        params = {
            "RegionId": region_id or self.api.region_id,
            "InstanceIds": json.dumps(list(instance_ids)),
        }
        return await self.api.call("DescribeInstances", params)

    async def delete_instance(self, instance_id, force=True) -> dict:
        """DeleteInstance. *force* also releases a running instance and its dependents."""
        params = {"InstanceId": instance_id, "Force": "true" if force else "false"}
        return await self.api.call("DeleteInstance", params)

    # ── Waiting ───────────────────────────────────────────────────

    async def wait_for_expected(self, request_fn, eval_fn, retry_times=0, retry_timeout=0):
        """Retry *request_fn* with this client's interval and default budget."""
        return await wait_for_expected(
            request_fn,
            eval_fn,
            retry_times=retry_times or self.retry_times,
            retry_interval=self.retry_interval,
            retry_timeout=retry_timeout,
        )

    async def wait_for_instance_status(self, region_id, instance_id, expected_status) -> dict:
        """Poll DescribeInstances until *instance_id* reports *expected_status*.

        API errors during polling are retried; the poll ends after
        ``status_timeout`` seconds.

        Returns:
            The DescribeInstances response that matched.
        """

        async def _describe():
            return await self.describe_instances([instance_id], region_id)

        def _eval(response, error):
            if error is not None:
                logger.debug(f"Describe instance {instance_id} failed: {error}")
                return WaitResult.RETRY
            for instance in instance_list(response):
                if instance.get("Status") == expected_status:
                    return WaitResult.SUCCESS
            return WaitResult.RETRY

        return await wait_for_expected(
            _describe,
            _eval,
            retry_interval=self.retry_interval,
            retry_timeout=self.status_timeout,
        )


def instance_list(response) -> list:
    """Extract the ``Instances.Instance`` list from a DescribeInstances response."""
    if not response:
        return []
    return (response.get("Instances") or {}).get("Instance") or []
