"""Build configuration: YAML loading, dataclasses, and validation."""

import logging
import os
import sys
from dataclasses import dataclass, field

import yaml

from ecsbake.client.wait import DEFAULT_RETRY_INTERVAL, DEFAULT_RETRY_TIMES, SHORT_RETRY_TIMES
from ecsbake.models import Trilean

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://ecs.aliyuncs.com"
DEFAULT_INSTANCE_STATUS_TIMEOUT = 600


@dataclass
class DiskMapping:
    """System or data disk specification."""

    disk_name: str = ""
    disk_category: str = ""
    disk_size: int = 0
    snapshot_id: str = ""
    description: str = ""
    delete_with_instance: bool = False
    device: str = ""
    encrypted: Trilean = Trilean.UNSET

    @classmethod
    def from_dict(cls, d: dict) -> "DiskMapping":
        return cls(
            disk_name=d.get("disk_name", ""),
            disk_category=d.get("disk_category", ""),
            disk_size=int(d.get("disk_size", 0) or 0),
            snapshot_id=d.get("snapshot_id", ""),
            description=d.get("description", ""),
            delete_with_instance=bool(d.get("delete_with_instance", False)),
            device=d.get("device", ""),
            encrypted=Trilean.from_value(d.get("encrypted")),
        )


@dataclass
class ImageConfig:
    """Disk layout of the build instance."""

    system_disk_mapping: DiskMapping = field(default_factory=DiskMapping)
    data_disk_mappings: list[DiskMapping] = field(default_factory=list)


@dataclass
class RunConfig:
    """Instance settings used by the create-instance step."""

    instance_type: str = ""
    instance_name: str = ""
    zone_id: str = ""
    io_optimized: Trilean = Trilean.UNSET
    user_data: str = ""
    user_data_file: str = ""
    internet_charge_type: str = ""
    internet_max_bandwidth_out: int = 0
    security_group_id: str = ""
    vswitch_id: str = ""
    source_image: str = ""


@dataclass
class CommConfig:
    """Communicator credentials baked into the instance."""

    ssh_password: str = ""
    winrm_password: str = ""


@dataclass
class RetryConfig:
    """Retry and polling budgets for API calls."""

    retry_times: int = DEFAULT_RETRY_TIMES
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    short_retry_times: int = SHORT_RETRY_TIMES
    instance_status_timeout: float = DEFAULT_INSTANCE_STATUS_TIMEOUT


@dataclass
class Config:
    """Complete build configuration."""

    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    department: str = ""
    resource_group: str = ""
    run: RunConfig = field(default_factory=RunConfig)
    comm: CommConfig = field(default_factory=CommConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_dict(cls, d: dict) -> "Config":
        """Build a Config from a parsed YAML dict.

        Credentials, region and endpoint fall back to the APSARASTACK_*
        environment variables when absent from the file.
        """
        run_dict = d.get("instance", {}) or {}
        run = RunConfig(
            instance_type=run_dict.get("instance_type", ""),
            instance_name=run_dict.get("instance_name", ""),
            zone_id=run_dict.get("zone_id", ""),
            io_optimized=Trilean.from_value(run_dict.get("io_optimized")),
            user_data=run_dict.get("user_data", ""),
            user_data_file=_expand_path(run_dict.get("user_data_file", "")),
            internet_charge_type=run_dict.get("internet_charge_type", ""),
            internet_max_bandwidth_out=int(run_dict.get("internet_max_bandwidth_out", 0) or 0),
            security_group_id=run_dict.get("security_group_id", ""),
            vswitch_id=run_dict.get("vswitch_id", ""),
            source_image=run_dict.get("source_image", ""),
        )

        comm_dict = d.get("communicator", {}) or {}
        comm = CommConfig(
            ssh_password=comm_dict.get("ssh_password", ""),
            winrm_password=comm_dict.get("winrm_password", ""),
        )

        disks_dict = d.get("disks", {}) or {}
        image = ImageConfig(
            system_disk_mapping=DiskMapping.from_dict(disks_dict.get("system_disk", {}) or {}),
            data_disk_mappings=[DiskMapping.from_dict(x) for x in disks_dict.get("data_disks", []) or []],
        )

        retry_dict = d.get("retry", {}) or {}
        retry = RetryConfig(
            retry_times=int(retry_dict.get("retry_times", DEFAULT_RETRY_TIMES)),
            retry_interval=float(retry_dict.get("retry_interval", DEFAULT_RETRY_INTERVAL)),
            short_retry_times=int(retry_dict.get("short_retry_times", SHORT_RETRY_TIMES)),
            instance_status_timeout=float(retry_dict.get("instance_status_timeout", DEFAULT_INSTANCE_STATUS_TIMEOUT)),
        )

        return cls(
            access_key=d.get("access_key") or os.environ.get("APSARASTACK_ACCESS_KEY", ""),
            secret_key=d.get("secret_key") or os.environ.get("APSARASTACK_SECRET_KEY", ""),
            region=d.get("region") or os.environ.get("APSARASTACK_REGION", ""),
            endpoint=d.get("endpoint") or os.environ.get("APSARASTACK_ENDPOINT", DEFAULT_ENDPOINT),
            department=str(d.get("department", "") or ""),
            resource_group=str(d.get("resource_group", "") or ""),
            run=run,
            comm=comm,
            image=image,
            retry=retry,
        )


def load_config(config_path: str = "build.yaml") -> Config:
    """Load and validate configuration from a YAML file."""
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(f"Error: Config file '{config_path}' not found.")
        sys.exit(1)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML config: {e}")
        sys.exit(1)

    config = Config.from_dict(raw)
    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    """Raise ValueError if required fields are missing or inconsistent."""
    missing = []
    for name in ("access_key", "secret_key", "region"):
        if not getattr(config, name):
            missing.append(name)
    for name in ("instance_type", "zone_id"):
        if not getattr(config.run, name):
            missing.append(f"instance.{name}")
    if missing:
        raise ValueError(f"Missing required config fields: {', '.join(missing)}")

    if config.run.user_data and config.run.user_data_file:
        raise ValueError("Only one of 'instance.user_data' and 'instance.user_data_file' can be set")
    if config.run.user_data_file and not os.path.isfile(config.run.user_data_file):
        raise ValueError(f"user_data_file '{config.run.user_data_file}' not found")

    if config.run.internet_max_bandwidth_out < 0:
        raise ValueError("instance.internet_max_bandwidth_out must not be negative")
    if config.retry.retry_times < 0:
        raise ValueError("retry.retry_times must not be negative")
    if config.retry.short_retry_times <= 0:
        raise ValueError("retry.short_retry_times must be positive")


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    if not path:
        return path
    return os.path.expanduser(os.path.expandvars(path))
