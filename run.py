#!/usr/bin/env python3
"""
SVX Monitor - Main runner script

Usage:
    python run.py                              # Run with defaults from config/config.yaml
    python run.py --config other.yaml          # Alternate config file
    python run.py --log ./log/svxlink.log      # Override the monitored log
    python run.py --skip-download              # Use the subscriber file already on disk
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from svxmon import __version__
from svxmon.config import DEFAULT_CONFIG_PATH, get_validated_config, load_config, set_config_value
from svxmon.config_schema import LoggingConfig
from svxmon.dashboard import run_dashboard
from svxmon.dashboard.errors import MonitorError

logger = logging.getLogger("svxmon")


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger once at startup."""
    logging.basicConfig(level=config.level, format=config.format)


def main() -> None:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Live dashboard of SvxLink / SvxReflector nodes"
    )
    parser.add_argument(
        "--config", default=str(DEFAULT_CONFIG_PATH), help="Path to config file"
    )
    parser.add_argument("--host", help="Override server host")
    parser.add_argument("--port", type=int, help="Override server port")
    parser.add_argument("--log", help="Override monitored log file (path/name)")
    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Do not refresh the subscriber file",
    )
    args: argparse.Namespace = parser.parse_args()

    load_config(args.config)
    if args.host:
        set_config_value("server.host", args.host)
    if args.port:
        set_config_value("server.port", args.port)
    if args.log:
        log_file = Path(args.log)
        set_config_value("monitor.log_path", str(log_file.parent))
        set_config_value("monitor.log_name", log_file.name)

    config = get_validated_config()
    configure_logging(config.logging)
    logger.info("SVXMon v%s", __version__)

    try:
        run_dashboard(config, download=not args.skip_download)
    except MonitorError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
