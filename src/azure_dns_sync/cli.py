#!/usr/bin/env python3
"""azure-dns-sync - keep Azure DNS A records in sync with resolved hostnames

Periodically resolves a list of hostnames and upserts the resulting addresses
as A record sets in Azure DNS zones.

Options (each can also be set through the environment variable shown):

    --config PATH          DNS_SYNC_CONFIG   Sync entry file (YAML)
                                             (default: /etc/azure-dns-sync/config.yml)
    --azure-config PATH    AZURE_CONFIG      Azure credential file (JSON)
                                             (default: /etc/kubernetes/azure.json)
    --update-time SPEC     UPDATE_TIME       Schedule, "@every <duration>" or
                                             @hourly/@daily/@weekly (default: @every 10m)
    --once                 SYNC_MODE=once    Run a single cycle and exit
    --log-level LEVEL      LOG_LEVEL         DEBUG, INFO, WARNING, ERROR (default: INFO)
    -v, --verbose                            DEBUG logging; -vv also prints tracebacks

Azure credential file:

    {
      "tenantId": "...",
      "subscriptionId": "...",
      "aadClientId": "...",
      "aadClientSecret": "...",
      "cloud": "AzurePublicCloud"
    }

Sync entry file:

    default:
      resourceGroup: dns-rg
      zone: example.com
      ttl: 300
    entries:
      - name: upstream.example.net
        dns: ["1.1.1.1"]
        azure:
          name: www
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from . import __version__
from .azure_auth import AzureCredentials
from .config import load_configuration
from .errors import SyncError
from .providers import create_zone_client
from .scheduler import Scheduler, parse_schedule

NAME = "azure-dns-sync"

logger = logging.getLogger(__name__)


# =============================================================================
# Arguments
# =============================================================================


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments, falling back to environment variables."""
    parser = argparse.ArgumentParser(
        prog=NAME,
        description="Sync resolved hostnames into Azure DNS A records",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=os.getenv("DNS_SYNC_CONFIG", "/etc/azure-dns-sync/config.yml"),
        help="DNS configuration file",
    )
    parser.add_argument(
        "--azure-config",
        default=os.getenv("AZURE_CONFIG", "/etc/kubernetes/azure.json"),
        help="Azure configuration file",
    )
    parser.add_argument(
        "--update-time",
        default=os.getenv("UPDATE_TIME", "@every 10m"),
        help="Update schedule",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=os.getenv("SYNC_MODE", "watch").strip().lower() == "once",
        help="Run a single sync cycle and exit",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Verbose mode (repeat for tracebacks)"
    )
    parser.add_argument("--version", action="version", version=f"{NAME} {__version__}")
    return parser.parse_args(argv)


def setup_logging(level: str, verbose: int = 0) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def install_signal_handlers(scheduler: Scheduler) -> None:
    """Stop the scheduler on SIGINT, SIGTERM and SIGHUP."""

    def _handle(signum, frame):
        logger.info(f"Got signal: {signal.Signals(signum).name}")
        scheduler.stop()

    for sig in (signal.SIGINT, signal.SIGTERM, getattr(signal, "SIGHUP", None)):
        if sig is not None:
            signal.signal(sig, _handle)


# =============================================================================
# Main
# =============================================================================


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.verbose)
    show_traceback = args.verbose >= 2

    # Startup: any failure here is fatal before the first tick.
    try:
        interval = parse_schedule(args.update_time)
        credentials = AzureCredentials.from_file(args.azure_config)
        zone_client = create_zone_client(credentials)
        configuration = load_configuration(args.config)
        configuration.set_zone_client(zone_client)
    except (SyncError, ValueError) as e:
        logger.error(f"Error: {e}", exc_info=show_traceback)
        sys.exit(1)

    if args.once:
        try:
            configuration.run()
        except SyncError as e:
            logger.error(f"Error: {e}", exc_info=show_traceback)
            sys.exit(1)
        return

    scheduler = Scheduler(interval, configuration.run, stop_event=threading.Event())
    install_signal_handlers(scheduler)

    logger.info(f"Starting {NAME} daemon version {__version__} ({args.update_time})")
    try:
        scheduler.run_forever()
    except SyncError as e:
        # A failed cycle stops the daemon so the failure stays visible.
        logger.error(f"Error: {e}", exc_info=show_traceback)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
