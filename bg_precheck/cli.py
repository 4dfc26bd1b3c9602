"""Command line entry point for the Blue/Green precheck."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from . import __version__
from .config import PrecheckSettings, load_settings
from .constants import EXIT_CODES, LOGGING_DEFAULTS
from .credentials import CredentialManager, sanitize_secret_arn_for_logging
from .database import ClusterConnector
from .exceptions import CredentialError, PrecheckError, UsageError
from .report import (
    configure_report_output,
    emit,
    log_file_name,
    render_connection_failure,
    render_endpoint_header,
    render_report,
)
from .schemas import ClusterTarget
from .targets import load_endpoints_file, target_from_connection_string, target_from_host
from .validators import check_cluster_readiness

logger = logging.getLogger(__name__)

SQL_SCRIPT = Path(__file__).parent / "sql" / "check_table_incompatibility.sql"

MODE_HOST = "host"
MODE_CONNECTION_STRING = "connection-string"
MODE_ENDPOINTS_FILE = "endpoints-file"

MODE_BANNERS = {
    MODE_HOST: "Using default database host and user input options",
    MODE_CONNECTION_STRING: "Using connection-string input option",
    MODE_ENDPOINTS_FILE: "Using database endpoints from file: {endpoints_file}",
}


def build_parser(settings: PrecheckSettings) -> argparse.ArgumentParser:
    # -h is the host flag, so help is --help only
    parser = argparse.ArgumentParser(
        prog="bg-precheck",
        description="Check RDS/Aurora PostgreSQL clusters for Blue/Green deployment readiness",
        add_help=False,
    )

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "-c", "--connection-string",
        help="Database connection string (a database in it restricts the check to that database)"
    )
    selection.add_argument(
        "-h", "--host",
        help="Database host (default: PGHOST)"
    )
    selection.add_argument(
        "--endpoints-file",
        type=Path,
        help="Path to a file containing a list of host:dbname pairs"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=settings.port,
        help=f"Database port (default: {settings.port})"
    )
    parser.add_argument(
        "-U", "--user",
        help=f"Database user (default: {settings.user})"
    )
    parser.add_argument("-P", "--password", help="Database password")
    parser.add_argument("--file-user", help="Database user for the endpoints in the file")
    parser.add_argument("--file-password", help="Database password for the endpoints in the file")
    parser.add_argument(
        "--secret-arn",
        help="AWS Secrets Manager or SSM Parameter Store ARN holding username/password"
    )
    parser.add_argument(
        "-l", "--log",
        dest="log_prefix",
        default=settings.log_prefix,
        help=f"Log file prefix, logs to a timestamped file (default: {settings.log_prefix})"
    )
    parser.add_argument("--no-log", action="store_true", help="Do not log output to a file")
    parser.add_argument(
        "--connect-timeout",
        type=int,
        default=settings.connect_timeout,
        help=f"Seconds to wait for each connection (default: {settings.connect_timeout})"
    )
    parser.add_argument(
        "--fail-on-not-ready",
        action="store_true",
        default=settings.fail_on_not_ready,
        help=f"Exit with status {EXIT_CODES['not_ready']} when any cluster is NOT READY"
    )
    parser.add_argument(
        "--print-sql",
        action="store_true",
        help="Print the standalone incompatibility SQL script and exit"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    return parser


def resolve_targets(
    args: argparse.Namespace,
    settings: PrecheckSettings,
    credential_manager: Optional[CredentialManager] = None,
) -> Tuple[str, List[ClusterTarget]]:
    """Turn parsed arguments into the selection mode and its cluster targets.

    Raises:
        UsageError: If no target is selected or required credentials are missing
        CredentialError: If ``--secret-arn`` cannot be read
    """
    secret_user, secret_password = None, None
    if args.secret_arn:
        manager = credential_manager or CredentialManager()
        logger.info(f"Reading credentials from {sanitize_secret_arn_for_logging(args.secret_arn)}")
        secret_user, secret_password = manager.get_login(args.secret_arn)
    from_secret = secret_password is not None

    if args.endpoints_file is not None:
        user = args.file_user or secret_user
        password = args.file_password or secret_password
        if not user or not password:
            raise UsageError(
                "--file-user and --file-password must be provided when using --endpoints-file"
            )
        targets = load_endpoints_file(
            args.endpoints_file,
            user=user,
            password=password,
            port=args.port,
            from_secret=from_secret and not args.file_password,
        )
        return MODE_ENDPOINTS_FILE, targets

    if args.connection_string:
        target = target_from_connection_string(
            args.connection_string,
            user=args.user or secret_user,
            password=args.password or secret_password,
            from_secret=from_secret and not args.password,
        )
        return MODE_CONNECTION_STRING, [target]

    host = args.host or settings.host
    if not host:
        raise UsageError("You must provide either a connection-string, a host, or an endpoints-file")

    target = target_from_host(
        host,
        port=args.port,
        user=args.user or secret_user or settings.user,
        password=args.password or secret_password,
        from_secret=from_secret and not args.password,
    )
    return MODE_HOST, [target]


def run(
    mode: str,
    targets: List[ClusterTarget],
    settings: PrecheckSettings,
    connect_timeout: int,
    fail_on_not_ready: bool = False,
    check: Optional[Callable] = None,
) -> int:
    """Check every target in turn and return the process exit code.

    A target that cannot be reached is reported and skipped; the remaining
    targets still run.
    """
    check = check or check_cluster_readiness
    if not targets:
        logger.error("No valid targets to check")
        return EXIT_CODES["failure"]

    checked = 0
    not_ready = []
    for target in targets:
        if mode == MODE_ENDPOINTS_FILE:
            emit(render_endpoint_header(target))

        connector = ClusterConnector(
            target,
            connect_timeout=connect_timeout,
            maintenance_database=settings.maintenance_database,
        )
        try:
            report = check(target, connector)
        except PrecheckError as e:
            emit(render_connection_failure(target, e))
            continue

        checked += 1
        emit(render_report(report))
        if not report.ready:
            not_ready.append(target.describe())

    if checked == 0:
        return EXIT_CODES["failure"]
    if not_ready and fail_on_not_ready:
        logger.warning(f"NOT READY: {', '.join(not_ready)}")
        return EXIT_CODES["not_ready"]
    return EXIT_CODES["ok"]


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format=LOGGING_DEFAULTS["diagnostic_format"],
        stream=sys.stderr,
    )

    if args.print_sql:
        sys.stdout.write(SQL_SCRIPT.read_text())
        return EXIT_CODES["ok"]

    try:
        mode, targets = resolve_targets(args, settings)
    except UsageError as e:
        parser.error(str(e))
    except CredentialError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return EXIT_CODES["failure"]

    log_file = None
    if not args.no_log:
        log_file = Path(log_file_name(args.log_prefix))
    try:
        configure_report_output(log_file)
    except OSError as e:
        print(f"{parser.prog}: error: cannot open log file {log_file}: {e}", file=sys.stderr)
        return EXIT_CODES["failure"]

    if log_file is not None:
        logger.info(f"Logging output to {log_file}")

    emit(["", MODE_BANNERS[mode].format(endpoints_file=args.endpoints_file)])

    return run(
        mode,
        targets,
        settings,
        connect_timeout=args.connect_timeout,
        fail_on_not_ready=args.fail_on_not_ready,
    )


if __name__ == "__main__":
    sys.exit(main())
