"""Typed build state shared between pipeline steps."""

from dataclasses import dataclass

from ecsbake.client.wrapper import ClientWrapper
from ecsbake.config import Config
from ecsbake.models import Image, Instance, InstanceNetwork


@dataclass
class BuildState:
    """Inputs produced by earlier steps and outputs published for later ones."""

    client: ClientWrapper
    config: Config
    source_image: Image | None = None
    security_group_id: str = ""
    network_type: InstanceNetwork = InstanceNetwork.CLASSIC
    vswitch_id: str = ""

    # Published by the create-instance step
    instance: Instance | None = None
    instance_id: str = ""

    error: Exception | None = None
    cancelled: bool = False

    @property
    def halted(self) -> bool:
        return self.error is not None
