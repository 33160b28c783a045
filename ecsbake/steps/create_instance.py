"""Create the temporary build instance and wait for it to finish booting."""

import base64
import logging
from dataclasses import dataclass, field

from ecsbake.client import CreateInstanceRequest, DataDisk, eval_could_retry_response, instance_list
from ecsbake.client_token import time_ordered_uuid
from ecsbake.config import Config
from ecsbake.models import (
    INSTANCE_STATUS_STOPPED,
    IO_OPTIMIZED_NONE,
    IO_OPTIMIZED_OPTIMIZED,
    Instance,
    InstanceNetwork,
    Trilean,
)
from ecsbake.state import BuildState
from ecsbake.steps.base import Step, StepAction, cleanup_message, halt

logger = logging.getLogger(__name__)

CREATE_INSTANCE_RETRY_ERRORS = ["IdempotentProcessing"]
DELETE_INSTANCE_RETRY_ERRORS = ["IncorrectInstanceStatus.Initializing"]

DEFAULT_INTERNET_CHARGE_TYPE = "PayByTraffic"
DEFAULT_INTERNET_MAX_BANDWIDTH_OUT = 5


@dataclass
class CreateInstanceStep(Step):
    """Creates the instance, waits for Stopped, and publishes it on the state.

    The instance is left for later steps on success; cleanup force-deletes it.
    """

    region_id: str
    instance_type: str
    zone_id: str = ""
    instance_name: str = ""
    io_optimized: Trilean = Trilean.UNSET
    user_data: str = ""
    user_data_file: str = ""
    internet_charge_type: str = ""
    internet_max_bandwidth_out: int = 0

    instance: Instance | None = field(default=None, init=False)

    @classmethod
    def from_config(cls, config: Config) -> "CreateInstanceStep":
        run = config.run
        return cls(
            region_id=config.region,
            instance_type=run.instance_type,
            zone_id=run.zone_id,
            instance_name=run.instance_name,
            io_optimized=run.io_optimized,
            user_data=run.user_data,
            user_data_file=run.user_data_file,
            internet_charge_type=run.internet_charge_type,
            internet_max_bandwidth_out=run.internet_max_bandwidth_out,
        )

    async def run(self, state: BuildState) -> StepAction:
        client = state.client

        logger.info("Creating instance...")
        try:
            request = self.build_request(state)
        except (OSError, ValueError) as e:
            return halt(state, e, "Error building create instance request")

        try:
            response = await client.wait_for_expected(
                lambda: client.create_instance(request),
                eval_could_retry_response(CREATE_INSTANCE_RETRY_ERRORS),
            )
        except Exception as e:
            return halt(state, e, "Error creating instance")

        instance_id = response.get("InstanceId", "")
        if not instance_id:
            return halt(state, RuntimeError("no InstanceId in CreateInstance response"), "Error creating instance")

        # From here on cleanup owns the instance, even if the wait fails or is cancelled
        self.instance = Instance(instance_id=instance_id, region_id=self.region_id)

        try:
            await client.wait_for_instance_status(self.region_id, instance_id, INSTANCE_STATUS_STOPPED)
        except Exception as e:
            return halt(state, e, "Error waiting create instance")

        try:
            instances = instance_list(await client.describe_instances([instance_id], self.region_id))
        except Exception as e:
            return halt(state, e, "Error describing instance")
        if not instances:
            return halt(state, RuntimeError(f"instance {instance_id} not found"), "Error describing instance")

        logger.info(f"Created instance: {instance_id}")
        self.instance = Instance.from_api(instances[0])
        state.instance = self.instance
        # instance_id is the generic name later steps look up
        state.instance_id = instance_id

        return StepAction.CONTINUE

    async def cleanup(self, state: BuildState) -> None:
        if self.instance is None:
            return
        cleanup_message(state, "instance")

        client = state.client
        instance_id = self.instance.instance_id
        try:
            await client.wait_for_expected(
                lambda: client.delete_instance(instance_id, force=True),
                eval_could_retry_response(DELETE_INSTANCE_RETRY_ERRORS),
                retry_times=client.short_retry_times,
            )
        except Exception as e:
            logger.error(f"Failed to clean up instance {instance_id}: {e}")

    # ── Request building ──────────────────────────────────────────

    def build_request(self, state: BuildState) -> CreateInstanceRequest:
        """Assemble the CreateInstance request from step fields and state."""
        config = state.config
        if state.source_image is None:
            raise ValueError("no source image available")

        request = CreateInstanceRequest(
            client_token=time_ordered_uuid(),
            region_id=self.region_id,
            instance_type=self.instance_type,
            instance_name=self.instance_name,
            zone_id=self.zone_id,
            image_id=state.source_image.image_id,
            security_group_id=state.security_group_id,
        )

        charge_type = self.internet_charge_type
        bandwidth = self.internet_max_bandwidth_out
        if state.network_type is InstanceNetwork.VPC:
            request.vswitch_id = state.vswitch_id
            request.user_data = self.get_user_data()
        else:
            if not charge_type:
                charge_type = DEFAULT_INTERNET_CHARGE_TYPE
            if not bandwidth:
                bandwidth = DEFAULT_INTERNET_MAX_BANDWIDTH_OUT
        request.internet_charge_type = charge_type
        request.internet_max_bandwidth_out = bandwidth

        if self.io_optimized.is_true():
            request.io_optimized = IO_OPTIMIZED_OPTIMIZED
        elif self.io_optimized.is_false():
            request.io_optimized = IO_OPTIMIZED_NONE

        password = config.comm.ssh_password
        if not password and config.comm.winrm_password:
            password = config.comm.winrm_password
        request.password = password

        system_disk = config.image.system_disk_mapping
        request.system_disk_name = system_disk.disk_name
        request.system_disk_category = system_disk.disk_category
        request.system_disk_size = system_disk.disk_size
        request.system_disk_description = system_disk.description

        for mapping in config.image.data_disk_mappings:
            disk = DataDisk(
                disk_name=mapping.disk_name,
                category=mapping.disk_category,
                size=mapping.disk_size,
                snapshot_id=mapping.snapshot_id,
                description=mapping.description,
                delete_with_instance=str(mapping.delete_with_instance).lower(),
                device=mapping.device,
            )
            if mapping.encrypted is not Trilean.UNSET:
                disk.encrypted = str(mapping.encrypted.is_true()).lower()
            request.data_disks.append(disk)

        return request

    def get_user_data(self) -> str:
        """Resolve user data from the file or inline value, base64-encoded if non-empty."""
        data = self.user_data.encode()
        if self.user_data_file:
            with open(self.user_data_file, "rb") as f:
                data = f.read()

        if not data:
            return ""
        return base64.b64encode(data).decode()
