"""CLI logging setup: plain message format with secret redaction."""

import logging
import sys

from ecsbake.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure the root logger with a plain message format for CLI commands.

    The redaction filter is attached to the handler so records propagated
    from library loggers are redacted too.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # httpx logs every request URL, which carries the signature
    logging.getLogger("httpx").setLevel(logging.WARNING)
