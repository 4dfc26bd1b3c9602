"""Read-only database connections and database enumeration for a cluster target."""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from .constants import CONNECTION_DEFAULTS
from .exceptions import ClusterConnectionError, QueryError
from .rules import LIST_DATABASES_QUERY
from .schemas import ClusterTarget

logger = logging.getLogger(__name__)


class ClusterConnector:
    """Opens read-only connections to the databases of one cluster target.

    Every connection gets its own ``NullPool`` engine which is disposed when
    the connection closes, so nothing is shared between databases or targets.
    """

    def __init__(
        self,
        target: ClusterTarget,
        connect_timeout: int = CONNECTION_DEFAULTS["connect_timeout"],
        maintenance_database: str = CONNECTION_DEFAULTS["maintenance_database"],
        engine_factory: Callable = create_engine,
    ):
        """Initialize the connector.

        Args:
            target: Cluster to connect to
            connect_timeout: Seconds to wait for each connection
            maintenance_database: Database used to enumerate the cluster when
                the target does not name one
            engine_factory: ``create_engine`` replacement (for testing)
        """
        self.target = target
        self.connect_timeout = connect_timeout
        self.maintenance_database = maintenance_database
        self._engine_factory = engine_factory

    @property
    def cluster_database(self) -> str:
        """Database used for enumeration and cluster-wide rules."""
        return self.target.database or self.maintenance_database

    def url(self, database: Optional[str] = None) -> URL:
        password = self.target.password.get_secret_value() if self.target.password else None
        return URL.create(
            "postgresql+psycopg2",
            username=self.target.user,
            password=password,
            host=self.target.host,
            port=self.target.port,
            database=database or self.cluster_database,
        )

    def connect_args(self) -> dict:
        args = {
            "connect_timeout": self.connect_timeout,
            "application_name": CONNECTION_DEFAULTS["application_name"],
        }
        # Keep libpq options such as sslmode from the original string; the
        # discrete URL parts take precedence over the same keys in the dsn.
        if self.target.connection_string is not None:
            args["dsn"] = self.target.connection_string.get_secret_value()
        return args

    @contextmanager
    def connect(self, database: Optional[str] = None) -> Iterator[Connection]:
        """Open a read-only connection to one database.

        Raises:
            ClusterConnectionError: If the database cannot be reached
        """
        database = database or self.cluster_database
        engine = self._engine_factory(
            self.url(database),
            poolclass=NullPool,
            connect_args=self.connect_args(),
        )
        try:
            try:
                conn = engine.connect()
            except SQLAlchemyError as e:
                reason = str(getattr(e, "orig", None) or e).strip()
                logger.error(f"Failed to connect to {self.target.host}/{database}: {reason}")
                raise ClusterConnectionError(self.target.host, database, reason) from e

            logger.info(f"Connected to {self.target.host}:{self.target.port}/{database}")
            try:
                conn.execution_options(postgresql_readonly=True)
                yield conn
            finally:
                conn.close()
        finally:
            engine.dispose()


def run_query(conn: Connection, rule_name: str, query) -> list:
    """Execute one catalog query and fetch every row.

    Each query runs in its own transaction so a failed query cannot abort the
    queries after it.

    Raises:
        QueryError: If the statement fails
    """
    try:
        with conn.begin():
            return list(conn.execute(query).fetchall())
    except SQLAlchemyError as e:
        orig = getattr(e, "orig", None) if isinstance(e, DBAPIError) else None
        reason = str(orig or e).strip()
        raise QueryError(rule_name, reason) from e


def list_databases(conn: Connection) -> List[str]:
    """All non-template, non-administrative databases of the cluster."""
    rows = run_query(conn, "list_databases", LIST_DATABASES_QUERY)
    return [row[0] for row in rows]


def enumerate_databases(target: ClusterTarget, conn: Connection) -> List[str]:
    """Databases to check for a target.

    A target naming a single database yields just that database; otherwise
    the cluster is queried through ``conn``.
    """
    if target.single_database:
        return [target.database]

    databases = list_databases(conn)
    logger.info(f"Found {len(databases)} database(s) on {target.host}: {', '.join(databases)}")
    return databases
