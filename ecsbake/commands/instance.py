"""Instance commands: create a build instance, delete an instance by id."""

import asyncio
import logging
import sys

from ecsbake.client import ClientWrapper, eval_could_retry_response
from ecsbake.config import load_config
from ecsbake.models import Image, InstanceNetwork
from ecsbake.redact import register_secret
from ecsbake.state import BuildState
from ecsbake.steps import DELETE_INSTANCE_RETRY_ERRORS, CreateInstanceStep, StepAction

logger = logging.getLogger(__name__)


def _load(config_path):
    try:
        config = load_config(config_path)
    except ValueError as e:
        logger.error(f"Invalid config: {e}")
        sys.exit(1)
    for secret in (config.access_key, config.secret_key, config.comm.ssh_password, config.comm.winrm_password):
        register_secret(secret)
    return config


def build_state(config, image_id=None, security_group_id=None, vswitch_id=None, client=None) -> BuildState:
    """Seed the build state from config, with CLI overrides."""
    vswitch_id = vswitch_id or config.run.vswitch_id
    return BuildState(
        client=client or ClientWrapper.from_config(config),
        config=config,
        source_image=Image(image_id=image_id or config.run.source_image),
        security_group_id=security_group_id or config.run.security_group_id,
        network_type=InstanceNetwork.VPC if vswitch_id else InstanceNetwork.CLASSIC,
        vswitch_id=vswitch_id,
    )


async def run_create(state: BuildState, keep=False) -> bool:
    """Run the create-instance step; clean up unless *keep* and it succeeded.

    Returns:
        True if the instance was created.
    """
    step = CreateInstanceStep.from_config(state.config)
    action = StepAction.HALT
    try:
        action = await step.run(state)
    except asyncio.CancelledError:
        state.cancelled = True
        raise
    finally:
        if action is StepAction.HALT or not keep:
            await step.cleanup(state)

    if action is StepAction.CONTINUE and keep:
        logger.info(f"Instance {state.instance_id} kept. Delete it with: ecsbake instance delete {state.instance_id}")
    return action is StepAction.CONTINUE


def handle_create(args):
    """CLI handler for 'instance create'."""
    asyncio.run(_handle_create(args))


async def _handle_create(args):
    config = _load(args.config)
    state = build_state(
        config,
        image_id=args.image_id,
        security_group_id=args.security_group_id,
        vswitch_id=args.vswitch_id,
    )
    if not state.source_image.image_id:
        logger.error("Error: no source image (set instance.source_image or --image-id)")
        sys.exit(1)

    if not await run_create(state, keep=args.keep):
        sys.exit(1)


def handle_delete(args):
    """CLI handler for 'instance delete'."""
    asyncio.run(_handle_delete(args))


async def _handle_delete(args):
    config = _load(args.config)
    client = ClientWrapper.from_config(config)

    logger.info(f"Deleting instance '{args.instance_id}'...")
    try:
        await client.wait_for_expected(
            lambda: client.delete_instance(args.instance_id, force=True),
            eval_could_retry_response(DELETE_INSTANCE_RETRY_ERRORS),
            retry_times=client.short_retry_times,
        )
    except Exception as e:
        logger.error(f"Failed to delete instance {args.instance_id}: {e}")
        sys.exit(1)
    logger.info("Instance deleted.")


# ── Registration ───────────────────────────────────────────────────


def register_instance_command(subparsers):
    """Register the 'instance' command with create/delete actions."""
    instance_parser = subparsers.add_parser("instance", help="Manage build instances")
    action_subparsers = instance_parser.add_subparsers(dest="action", required=True)

    create_parser = action_subparsers.add_parser("create", help="Create a build instance and wait for it to boot")
    create_parser.add_argument("-c", "--config", default="build.yaml", help="Build config file (default: build.yaml)")
    create_parser.add_argument("--image-id", default=None, help="Source image ID (overrides instance.source_image)")
    create_parser.add_argument("--security-group-id", default=None, help="Security group ID")
    create_parser.add_argument("--vswitch-id", default=None, help="VSwitch ID; selects VPC networking")
    create_parser.add_argument("--keep", action="store_true", help="Leave the instance running after creation")
    create_parser.set_defaults(func=handle_create)

    delete_parser = action_subparsers.add_parser("delete", help="Force-delete an instance")
    delete_parser.add_argument("instance_id", help="Instance ID")
    delete_parser.add_argument("-c", "--config", default="build.yaml", help="Build config file (default: build.yaml)")
    delete_parser.set_defaults(func=handle_delete)
