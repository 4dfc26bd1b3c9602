"""Exception hierarchy for the Blue/Green precheck."""
from typing import Optional


class PrecheckError(Exception):
    """Base class for all precheck errors."""


class UsageError(PrecheckError):
    """Bad or conflicting command line input, raised before any database work."""


class CredentialError(PrecheckError):
    """Credentials could not be resolved from the configured source."""


class ClusterConnectionError(PrecheckError, ConnectionError):
    """A cluster target (or one of its databases) could not be reached."""

    def __init__(self, host: str, database: Optional[str] = None, reason: str = ""):
        self.host = host
        self.database = database
        self.reason = reason
        where = f"{host}/{database}" if database else host
        super().__init__(f"Could not connect to {where}: {reason}")


class QueryError(PrecheckError):
    """A single diagnostic query failed to execute."""

    def __init__(self, rule: str, reason: str):
        self.rule = rule
        self.reason = reason
        super().__init__(f"{rule} query failed: {reason}")
