"""Command-line entry point: provisions the host, no flags."""
from __future__ import annotations

import os
import sys

from . import constants
from .config import ConfigError, configure_logging, load_context
from .converge.runner import ProvisionRunner
from .reporting import FatalProvisioningError, Reporter


def main() -> int:
    configure_logging(os.environ.get(constants.LOG_LEVEL_ENV_VAR))
    reporter = Reporter()
    try:
        try:
            context = load_context()
        except ConfigError as exc:
            reporter.fatal(str(exc), step="configuration")
        ProvisionRunner.build(context, reporter=reporter).run()
    except FatalProvisioningError:
        return 1
    except KeyboardInterrupt:
        reporter.warning("Interrupted.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
