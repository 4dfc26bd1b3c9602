"""Building cluster targets from command line input and endpoints files."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from psycopg2 import ProgrammingError
from psycopg2.extensions import parse_dsn
from pydantic import ValidationError

from .constants import CONNECTION_DEFAULTS
from .exceptions import UsageError
from .schemas import ClusterTarget, CredentialSource

logger = logging.getLogger(__name__)


def _credential_source(password: Optional[str], from_secret: bool) -> CredentialSource:
    if from_secret:
        return CredentialSource.SECRET
    if password:
        return CredentialSource.PASSWORD
    return CredentialSource.ENVIRONMENT


def target_from_host(
    host: str,
    port: int = CONNECTION_DEFAULTS["port"],
    user: str = CONNECTION_DEFAULTS["user"],
    password: Optional[str] = None,
    from_secret: bool = False,
) -> ClusterTarget:
    """Target for discrete host/port/user/password flags; all databases are checked."""
    try:
        return ClusterTarget(
            host=host,
            port=port,
            user=user,
            password=password or None,
            credential_source=_credential_source(password, from_secret),
        )
    except ValidationError as e:
        raise UsageError(f"Invalid host options: {e}") from e


def target_from_connection_string(
    connection_string: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    from_secret: bool = False,
) -> ClusterTarget:
    """Target for a libpq connection string (URI or ``key=value`` form).

    A database named in the string restricts the check to that database.
    ``user`` and ``password`` fill in values the string does not carry.

    Raises:
        UsageError: If the string cannot be parsed or names no host
    """
    try:
        params = parse_dsn(connection_string)
    except ProgrammingError as e:
        raise UsageError(f"Invalid connection string: {e}") from e

    host = params.get("host")
    if not host:
        raise UsageError("Connection string must include a host")

    password = params.get("password") or password
    try:
        return ClusterTarget(
            host=host,
            port=int(params.get("port") or CONNECTION_DEFAULTS["port"]),
            user=params.get("user") or user or CONNECTION_DEFAULTS["user"],
            database=params.get("dbname") or None,
            password=password or None,
            credential_source=_credential_source(password, from_secret and not params.get("password")),
            connection_string=connection_string,
        )
    except (ValidationError, ValueError) as e:
        raise UsageError(f"Invalid connection string: {e}") from e


def parse_endpoint_line(line: str) -> Optional[Tuple[str, str]]:
    """Split one ``host:database`` line.

    Returns:
        ``(host, database)``, or None for blank and comment lines

    Raises:
        ValueError: If the line is malformed
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    parts = line.split(":")
    if len(parts) != 2:
        raise ValueError(f"expected host:database, got {line!r}")

    host, database = (part.strip() for part in parts)
    if not host or not database:
        raise ValueError(f"host and database must both be set in {line!r}")
    return host, database


def load_endpoints_file(
    path: Union[str, Path],
    user: str,
    password: Optional[str] = None,
    port: int = CONNECTION_DEFAULTS["port"],
    from_secret: bool = False,
) -> List[ClusterTarget]:
    """Read an endpoints file into single-database targets.

    Malformed lines are logged and skipped so the rest of the file still runs.

    Args:
        path: File with one ``host:database`` pair per line
        user: Database user shared by every endpoint
        password: Password shared by every endpoint
        port: Port shared by every endpoint
        from_secret: Whether the shared credentials came from AWS

    Returns:
        One ClusterTarget per valid line, in file order

    Raises:
        UsageError: If the file cannot be read
    """
    path = Path(path)
    try:
        lines = path.read_text().splitlines()
    except OSError as e:
        raise UsageError(f"Cannot read endpoints file {path}: {e}") from e

    targets = []
    for number, line in enumerate(lines, start=1):
        try:
            parsed = parse_endpoint_line(line)
        except ValueError as e:
            logger.warning(f"Skipping line {number} of {path}: {e}")
            continue
        if parsed is None:
            continue

        host, database = parsed
        try:
            targets.append(
                ClusterTarget(
                    host=host,
                    port=port,
                    user=user,
                    database=database,
                    password=password or None,
                    credential_source=_credential_source(password, from_secret),
                    label=f"{host}:{database}",
                )
            )
        except ValidationError as e:
            logger.warning(f"Skipping line {number} of {path}: {e}")

    logger.info(f"Loaded {len(targets)} endpoint(s) from {path}")
    return targets
