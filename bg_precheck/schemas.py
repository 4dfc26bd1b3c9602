"""Pydantic schemas for cluster targets, rule results and readiness reports."""

from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, SecretStr, computed_field, field_validator

from .constants import CONNECTION_DEFAULTS


class CredentialSource(str, Enum):
    PASSWORD = "password"        # Supplied on the command line or endpoints flags
    SECRET = "secret"            # AWS Secrets Manager / SSM Parameter Store
    ENVIRONMENT = "environment"  # libpq defaults (PGPASSWORD, ~/.pgpass)


class RuleScope(str, Enum):
    DATABASE = "database"
    CLUSTER = "cluster"


class ReplicaIdentity(str, Enum):
    """Values of ``pg_class.relreplident``."""
    DEFAULT = "d"
    NOTHING = "n"
    FULL = "f"
    INDEX = "i"


class RemediationAction(str, Enum):
    NONE = "none"
    SET_REPLICA_IDENTITY_FULL = "set_replica_identity_full"
    ADD_PRIMARY_KEY = "add_primary_key"
    SET_REPLICA_IDENTITY_FULL_AND_ADD_PRIMARY_KEY = "set_replica_identity_full_and_add_primary_key"


class ClusterTarget(BaseModel):
    """One cluster endpoint to check.

    ``database`` is set when the target names a single database (connection
    string with a path, or an endpoints-file line); otherwise every database
    in the cluster is enumerated.
    """
    host: str = Field(min_length=1)
    port: int = Field(default=CONNECTION_DEFAULTS["port"], ge=1, le=65535)
    user: str = CONNECTION_DEFAULTS["user"]
    database: Optional[str] = None
    password: Optional[SecretStr] = None
    credential_source: CredentialSource = CredentialSource.ENVIRONMENT
    connection_string: Optional[SecretStr] = None
    label: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("host", "user")
    @classmethod
    def strip_whitespace(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @property
    def single_database(self) -> bool:
        return self.database is not None

    def describe(self) -> str:
        """Human readable name used in banners and log lines."""
        if self.database:
            return f"{self.host}:{self.database}"
        return self.host


class RuleResult(BaseModel):
    rule: str
    scope: RuleScope
    target: str
    database: Optional[str] = None
    passed: bool
    detail: Optional[str] = None
    statements: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ReadinessReport(BaseModel):
    """All rule results for one cluster target.

    Results are appended as rules run; ``ready`` is derived and is true only
    when every result passed (an empty report is ready).
    """
    target: str
    databases: List[str] = Field(default_factory=list)
    results: List[RuleResult] = Field(default_factory=list)

    def add(self, result: RuleResult) -> None:
        self.results.append(result)

    @computed_field
    @property
    def ready(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failures(self) -> List[RuleResult]:
        return [result for result in self.results if not result.passed]

    def results_for(self, database: Optional[str]) -> List[RuleResult]:
        """Results for one database, or the cluster-scoped results for ``None``."""
        return [result for result in self.results if result.database == database]
