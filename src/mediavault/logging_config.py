"""Logging setup for MediaVault hosts and the CLI."""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, audit_level: int = logging.WARNING) -> None:
    # stderr, so CLI output on stdout stays machine-readable
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", stream=sys.stderr)
    # ownership violations and integrity failures stay visible when the root is quieter
    logging.getLogger("mediavault.audit").setLevel(audit_level)
