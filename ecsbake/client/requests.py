"""CreateInstance request model and RPC parameter flattening."""

from dataclasses import dataclass, field


@dataclass
class DataDisk:
    """One ``DataDisk.N`` entry of a CreateInstance request."""

    disk_name: str = ""
    category: str = ""
    size: int = 0
    snapshot_id: str = ""
    description: str = ""
    delete_with_instance: str = ""
    device: str = ""
    encrypted: str = ""

    def to_params(self, index) -> dict:
        prefix = f"DataDisk.{index}."
        return _compact(
            {
                prefix + "DiskName": self.disk_name,
                prefix + "Category": self.category,
                prefix + "Size": _number(self.size),
                prefix + "SnapshotId": self.snapshot_id,
                prefix + "Description": self.description,
                prefix + "DeleteWithInstance": self.delete_with_instance,
                prefix + "Device": self.device,
                prefix + "Encrypted": self.encrypted,
            }
        )


@dataclass
class CreateInstanceRequest:
    """All fields sent with a CreateInstance call."""

    region_id: str = ""
    zone_id: str = ""
    instance_type: str = ""
    instance_name: str = ""
    image_id: str = ""
    security_group_id: str = ""
    vswitch_id: str = ""
    user_data: str = ""
    internet_charge_type: str = ""
    internet_max_bandwidth_out: int = 0
    io_optimized: str = ""
    password: str = ""
    system_disk_name: str = ""
    system_disk_category: str = ""
    system_disk_size: int = 0
    system_disk_description: str = ""
    data_disks: list[DataDisk] = field(default_factory=list)
    client_token: str = ""

    def to_params(self) -> dict:
        """Flatten into RPC query parameters, dropping unset fields."""
        params = _compact(
            {
                "RegionId": self.region_id,
                "ZoneId": self.zone_id,
                "InstanceType": self.instance_type,
                "InstanceName": self.instance_name,
                "ImageId": self.image_id,
                "SecurityGroupId": self.security_group_id,
                "VSwitchId": self.vswitch_id,
                "UserData": self.user_data,
                "InternetChargeType": self.internet_charge_type,
                "InternetMaxBandwidthOut": _number(self.internet_max_bandwidth_out),
                "IoOptimized": self.io_optimized,
                "Password": self.password,
                "SystemDisk.DiskName": self.system_disk_name,
                "SystemDisk.Category": self.system_disk_category,
                "SystemDisk.Size": _number(self.system_disk_size),
                "SystemDisk.Description": self.system_disk_description,
                "ClientToken": self.client_token,
            }
        )
        for i, disk in enumerate(self.data_disks, start=1):
            params.update(disk.to_params(i))
        return params


def _number(value) -> str:
    # Non-positive numbers mean "let the API choose"
    return str(value) if value and value > 0 else ""


def _compact(d: dict) -> dict:
    return {k: v for k, v in d.items() if v not in ("", None)}
