"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

from ecsbake.client import ClientWrapper
from ecsbake.config import Config
from ecsbake.models import Image, InstanceNetwork
from ecsbake.state import BuildState

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

INSTANCE_ID = "i-2ze0h5ctkhwxxi7vfsdg"


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the ecsbake CLI as a subprocess."""

    def _run(*args, env=None):
        result = subprocess.run(
            [sys.executable, "-m", "ecsbake.ecsbake", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env={**os.environ, **(env or {})},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def sample_config_dict():
    """Return a raw build config dict as it would appear in build.yaml."""
    return {
        "access_key": "LTAI5tTestAccessKey",
        "secret_key": "TestSecretKeyValue0123456789",
        "region": "cn-qingdao-env17-d01",
        "endpoint": "https://ecs.internal.example.com",
        "department": "11",
        "resource_group": "27",
        "instance": {
            "instance_type": "ecs.n4.large",
            "instance_name": "bake-test",
            "zone_id": "cn-qingdao-env17-amtest17001-a",
            "security_group_id": "sg-test",
            "source_image": "m-source",
        },
        "communicator": {"ssh_password": "Bake-Passw0rd"},
        "retry": {
            "retry_times": 4,
            "retry_interval": 0.001,
            "short_retry_times": 2,
            "instance_status_timeout": 0.2,
        },
    }


@pytest.fixture
def make_config_file(sample_config_dict):
    """Return a factory that writes a temporary build.yaml."""

    def _make(tmp_dir, overrides=None):
        config = {**sample_config_dict, **(overrides or {})}
        config_path = os.path.join(str(tmp_dir), "build.yaml")
        with open(config_path, "w") as f:
            yaml.dump(config, f)
        return config_path

    return _make


# ── Fake ECS API ────────────────────────────────────────────────────


def instance_payload(instance_id=INSTANCE_ID, status="Stopped"):
    """A DescribeInstances ``Instance`` entry."""
    return {
        "InstanceId": instance_id,
        "InstanceName": "bake-test",
        "Status": status,
        "RegionId": "cn-qingdao-env17-d01",
        "ZoneId": "cn-qingdao-env17-amtest17001-a",
        "InstanceType": "ecs.n4.large",
        "ImageId": "m-source",
    }


class FakeApi:
    """Stands in for EcsApi: records calls and replays scripted results.

    ``script[action]`` is a list consumed in order; items are response dicts
    or exceptions to raise. When a list runs dry, a default success is used.
    """

    def __init__(self, region_id="cn-qingdao-env17-d01"):
        self.region_id = region_id
        self.calls = []
        self.script = {}

    def on(self, action, *results):
        self.script.setdefault(action, []).extend(results)
        return self

    def calls_for(self, action):
        return [params for name, params in self.calls if name == action]

    async def call(self, action, params=None):
        self.calls.append((action, dict(params or {})))
        queue = self.script.get(action)
        result = queue.pop(0) if queue else self._default(action)
        if isinstance(result, Exception):
            raise result
        return result

    @staticmethod
    def _default(action):
        if action == "CreateInstance":
            return {"InstanceId": INSTANCE_ID, "RequestId": "req-create"}
        if action == "DescribeInstances":
            return {"Instances": {"Instance": [instance_payload()]}, "TotalCount": 1}
        return {"RequestId": f"req-{action}"}


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def make_state(fake_api, sample_config_dict):
    """Return a factory for a BuildState backed by the fake API."""

    def _make(config=None, network_type=InstanceNetwork.CLASSIC, vswitch_id="", **client_kwargs):
        config = config or Config.from_dict(sample_config_dict)
        client = ClientWrapper(
            fake_api,
            retry_times=client_kwargs.get("retry_times", config.retry.retry_times),
            retry_interval=client_kwargs.get("retry_interval", 0.001),
            short_retry_times=client_kwargs.get("short_retry_times", config.retry.short_retry_times),
            status_timeout=client_kwargs.get("status_timeout", 0.2),
        )
        return BuildState(
            client=client,
            config=config,
            source_image=Image(image_id="m-source"),
            security_group_id="sg-test",
            network_type=network_type,
            vswitch_id=vswitch_id,
        )

    return _make
