"""bg_precheck - Blue/Green deployment readiness checks for RDS/Aurora PostgreSQL."""

__version__ = "0.1.0"

from .constants import (
    EXCLUDED_DATABASES,
    SYSTEM_SCHEMAS,
    WARNINGS,
)

from .exceptions import (
    PrecheckError,
    UsageError,
    CredentialError,
    ClusterConnectionError,
    QueryError,
)

from .schemas import (
    # Enums
    CredentialSource,
    RuleScope,
    ReplicaIdentity,
    RemediationAction,

    # Models
    ClusterTarget,
    RuleResult,
    ReadinessReport,
)

from .rules import (
    Rule,
    PRIMARY_KEY_RULE,
    LARGE_OBJECTS_RULE,
    FOREIGN_TABLES_RULE,
    LOGICAL_SLOTS_RULE,
    DATABASE_RULES,
    CLUSTER_RULES,
    decide_remediation,
    render_remediation,
)

from .database import (
    ClusterConnector,
    enumerate_databases,
    list_databases,
)

from .validators import (
    evaluate_rule,
    validate_database,
    validate_cluster,
    check_cluster_readiness,
)

from .targets import (
    target_from_host,
    target_from_connection_string,
    load_endpoints_file,
)

from .credentials import CredentialManager

__all__ = [
    "__version__",
    # Constants
    "EXCLUDED_DATABASES",
    "SYSTEM_SCHEMAS",
    "WARNINGS",
    # Exceptions
    "PrecheckError",
    "UsageError",
    "CredentialError",
    "ClusterConnectionError",
    "QueryError",
    # Schemas
    "CredentialSource",
    "RuleScope",
    "ReplicaIdentity",
    "RemediationAction",
    "ClusterTarget",
    "RuleResult",
    "ReadinessReport",
    # Rules
    "Rule",
    "PRIMARY_KEY_RULE",
    "LARGE_OBJECTS_RULE",
    "FOREIGN_TABLES_RULE",
    "LOGICAL_SLOTS_RULE",
    "DATABASE_RULES",
    "CLUSTER_RULES",
    "decide_remediation",
    "render_remediation",
    # Database
    "ClusterConnector",
    "enumerate_databases",
    "list_databases",
    # Validation
    "evaluate_rule",
    "validate_database",
    "validate_cluster",
    "check_cluster_readiness",
    # Targets
    "target_from_host",
    "target_from_connection_string",
    "load_endpoints_file",
    # Credentials
    "CredentialManager",
]
