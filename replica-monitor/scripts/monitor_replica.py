"""
Monitors MySQL replica status and lag trends
Skips replication errors matching the configured patterns via mysql.rds_skip_repl_error
"""
import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import pymysql

from db_config import (
    ERROR_PATTERNS,
    LOG_FORMAT,
    LOG_LEVEL,
    MONITORING_INTERVAL_SECONDS,
    REPLICA_CONFIG,
)
from db_connection import DatabaseConnection, DatabaseConnectionError
from error_matcher import ErrorMatcher, PatternConfigurationError
from presenter import DEFAULT_METRICS_FILE, ConsolePresenter, JsonlMetricsSink, PresenterGroup
from recovery import SkipErrorRecovery
from replica_monitor import ReplicaMonitor
from replica_status import ReplicaStatusSource

logger = logging.getLogger(__name__)

USAGE_EXAMPLE = "Example: replica-monitor --host mydb.example.com --user admin --password mypass"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MySQL Replica Status Monitor")
    parser.add_argument("--host", default=REPLICA_CONFIG.host, help="MySQL host (required)")
    parser.add_argument("--user", default=REPLICA_CONFIG.user, help="MySQL username (required)")
    parser.add_argument("--password", default=REPLICA_CONFIG.password, help="MySQL password (required)")
    parser.add_argument(
        "--port",
        type=int,
        default=REPLICA_CONFIG.port,
        help=f"MySQL port (default: {REPLICA_CONFIG.port})"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=MONITORING_INTERVAL_SECONDS,
        help=f"Seconds between checks (default: {MONITORING_INTERVAL_SECONDS})"
    )
    parser.add_argument(
        "--pattern",
        action="append",
        dest="patterns",
        help="Regex matched against Last_SQL_Error; repeat for several (default: Coordinator stopped)"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=None,
        help="Monitoring duration in seconds (default: infinite)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the recovery statement instead of executing it"
    )
    parser.add_argument(
        "--metrics-file",
        type=Path,
        default=DEFAULT_METRICS_FILE,
        help="JSON Lines file for cycle metrics"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Don't save metrics to file"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    parser = build_parser()
    args = parser.parse_args(argv)

    config = replace(REPLICA_CONFIG, host=args.host, port=args.port, user=args.user, password=args.password)
    if not config.is_complete:
        print("Usage: replica-monitor --host <hostname> --user <username> --password <password> [--port <port>]")
        print(USAGE_EXAMPLE)
        parser.print_help()
        return 2

    try:
        error_matcher = ErrorMatcher(args.patterns or ERROR_PATTERNS)
    except PatternConfigurationError as e:
        logger.error(str(e))
        return 2

    db = DatabaseConnection(config)
    try:
        db.initialize()
        db.ping()
    except (DatabaseConnectionError, pymysql.MySQLError) as e:
        logger.error(f"Failed to connect to database: {e}")
        db.close()
        return 1

    print(f"Successfully connected to MySQL database at {config.host}:{config.port}")
    print("Starting replica status monitoring...")
    print("Press Ctrl+C to stop")
    print()

    presenter = ConsolePresenter()
    if not args.no_save:
        presenter = PresenterGroup(presenter, JsonlMetricsSink(args.metrics_file))

    monitor = ReplicaMonitor(
        status_source=ReplicaStatusSource(db),
        recovery=SkipErrorRecovery(db, dry_run=args.dry_run),
        presenter=presenter,
        error_matcher=error_matcher,
        interval_seconds=args.interval,
    )

    signal.signal(signal.SIGINT, lambda s, f: monitor.stop())
    signal.signal(signal.SIGTERM, lambda s, f: monitor.stop())

    try:
        monitor.monitor(duration_seconds=args.duration)
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
