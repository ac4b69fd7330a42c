"""Command line entry point.

Usage:
    PHOENIX_OLD_CLUSTER_VERSION=6.3.2 python -m phoenix --phase pre_upgrade
    # restart the cluster on the new version
    PHOENIX_OLD_CLUSTER_VERSION=6.3.2 python -m phoenix --phase post_upgrade
"""

import argparse
import sys
import tomllib

from pydantic import ValidationError
from pydantic_settings import SettingsError

from phoenix.client import ServiceClient
from phoenix.config import get_settings
from phoenix.harness.errors import ConfigurationError
from phoenix.harness.models import Phase
from phoenix.observability.logging import get_logger, setup_logging
from phoenix.runner import build_harness_config, run_phase
from phoenix.scenarios import SCENARIO_NAMES

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_ABORTED = 3


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="phoenix",
        description="Verify that a service keeps its state across a full-restart upgrade",
    )
    parser.add_argument(
        "--phase",
        choices=[phase.value for phase in Phase],
        help="Which half of the restart to run (default: PHOENIX_PHASE)",
    )
    parser.add_argument(
        "--old-version",
        help="Version of the cluster before the upgrade (default: PHOENIX_OLD_CLUSTER_VERSION)",
    )
    parser.add_argument(
        "--scenario",
        action="append",
        choices=SCENARIO_NAMES,
        dest="scenarios",
        help="Run only this scenario; repeatable",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = get_settings()
    except (FileNotFoundError, tomllib.TOMLDecodeError, SettingsError, ValidationError) as e:
        setup_logging()
        get_logger("phoenix").error("settings_error", error=str(e))
        return EXIT_CONFIG

    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
    )
    logger = get_logger("phoenix")

    try:
        config = build_harness_config(settings, phase=args.phase, old_version=args.old_version)
    except ConfigurationError as e:
        logger.error("configuration_error", error=e.message)
        return EXIT_CONFIG

    with ServiceClient.from_config(settings.client) as client:
        report = run_phase(settings, config, client, only=args.scenarios)

    if report.aborted:
        logger.error("run_aborted", reason=report.abort_reason)
        return EXIT_ABORTED
    return EXIT_OK if report.passed else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
