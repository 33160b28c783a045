#!/usr/bin/env python3
"""ECS image build tools — CLI entrypoint."""

import argparse

from ecsbake.commands.instance import register_instance_command
from ecsbake.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="ECS image build tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log API calls and retries")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_instance_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
