"""Shared data types for ECS instances and build configuration."""

from dataclasses import dataclass, field
from enum import Enum

# Instance status values reported by DescribeInstances
INSTANCE_STATUS_PENDING = "Pending"
INSTANCE_STATUS_STARTING = "Starting"
INSTANCE_STATUS_RUNNING = "Running"
INSTANCE_STATUS_STOPPING = "Stopping"
INSTANCE_STATUS_STOPPED = "Stopped"

IO_OPTIMIZED_OPTIMIZED = "optimized"
IO_OPTIMIZED_NONE = "none"


class Trilean(Enum):
    """Boolean that can also be left unset."""

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_value(cls, value) -> "Trilean":
        """Parse a YAML value (None, bool, or 'true'/'false' string)."""
        if value is None or value == "":
            return cls.UNSET
        if isinstance(value, Trilean):
            return value
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        text = str(value).strip().lower()
        if text in ("true", "yes", "1"):
            return cls.TRUE
        if text in ("false", "no", "0"):
            return cls.FALSE
        raise ValueError(f"Invalid tri-state boolean: {value!r}")

    def is_true(self) -> bool:
        return self is Trilean.TRUE

    def is_false(self) -> bool:
        return self is Trilean.FALSE


class InstanceNetwork(Enum):
    """Network mode of the build instance."""

    CLASSIC = "classic"
    VPC = "vpc"


@dataclass
class Image:
    """Source image the instance boots from."""

    image_id: str
    image_name: str = ""


@dataclass
class Instance:
    """ECS instance descriptor as returned by DescribeInstances."""

    instance_id: str
    instance_name: str = ""
    status: str = ""
    region_id: str = ""
    zone_id: str = ""
    instance_type: str = ""
    image_id: str = ""
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, d: dict) -> "Instance":
        """Build an Instance from a DescribeInstances ``Instance`` entry."""
        return cls(
            instance_id=d.get("InstanceId", ""),
            instance_name=d.get("InstanceName", ""),
            status=d.get("Status", ""),
            region_id=d.get("RegionId", ""),
            zone_id=d.get("ZoneId", ""),
            instance_type=d.get("InstanceType", ""),
            image_id=d.get("ImageId", ""),
            raw=d,
        )
