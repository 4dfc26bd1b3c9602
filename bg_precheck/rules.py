"""Catalogue of Blue/Green readiness rules.

Each rule pairs a read-only catalog query with a function that interprets the
query result as ``(passed, statements)``. Rules never depend on each other's
outcome; the evaluator in :mod:`bg_precheck.validators` runs them in the
order of :data:`DATABASE_RULES` followed by :data:`CLUSTER_RULES`.
"""
import logging
from typing import Callable, List, Sequence, Tuple, Union

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from .constants import EXCLUDED_DATABASES, SYSTEM_SCHEMAS
from .schemas import RemediationAction, ReplicaIdentity, RuleScope

logger = logging.getLogger(__name__)

# (passed, suggested statements)
Interpretation = Tuple[bool, List[str]]


# Enumeration query, used by the database enumerator rather than as a rule
LIST_DATABASES_QUERY = text(
    """
    SELECT datname
    FROM pg_database
    WHERE datistemplate = false
      AND datname NOT IN :excluded
    ORDER BY datname
    """
).bindparams(bindparam("excluded", value=list(EXCLUDED_DATABASES), expanding=True))


TABLE_IDENTITY_QUERY = text(
    """
    SELECT
        quote_ident(n.nspname) AS schema_name,
        quote_ident(c.relname) AS table_name,
        EXISTS (
            SELECT 1
            FROM pg_index i
            WHERE i.indrelid = c.oid AND i.indisprimary
        ) AS has_primary_key,
        c.relreplident::text AS replica_identity,
        COALESCE(
            array_agg(quote_ident(a.attname) ORDER BY a.attnum)
                FILTER (WHERE a.attnum IS NOT NULL),
            ARRAY[]::text[]
        ) AS columns
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_attribute a
        ON a.attrelid = c.oid AND a.attnum > 0 AND NOT a.attisdropped
    WHERE c.relkind = 'r'
      AND n.nspname NOT IN :system_schemas
    GROUP BY n.nspname, c.relname, c.oid, c.relreplident
    ORDER BY n.nspname, c.relname
    """
).bindparams(bindparam("system_schemas", value=list(SYSTEM_SCHEMAS), expanding=True))

LARGE_OBJECTS_QUERY = text("SELECT EXISTS (SELECT 1 FROM pg_largeobject)")

FOREIGN_TABLES_QUERY = text("SELECT EXISTS (SELECT * FROM information_schema.foreign_tables)")

LOGICAL_SLOTS_QUERY = text(
    "SELECT EXISTS (SELECT 1 FROM pg_replication_slots WHERE slot_type = 'logical')"
)


def decide_remediation(
    has_primary_key: bool,
    replica_identity: Union[ReplicaIdentity, str],
    columns: Sequence[str],
) -> RemediationAction:
    """Decide what a table needs before it can take part in a Blue/Green switchover.

    Args:
        has_primary_key: Whether the table has a primary key index
        replica_identity: ``pg_class.relreplident`` value for the table
        columns: Non-dropped column names in declaration order

    Returns:
        The remediation action for the table; ``NONE`` when it is compliant
    """
    full_identity = ReplicaIdentity(replica_identity) == ReplicaIdentity.FULL

    if has_primary_key:
        if full_identity:
            return RemediationAction.NONE
        return RemediationAction.SET_REPLICA_IDENTITY_FULL

    # A table without columns cannot be given a primary key
    if not columns:
        if full_identity:
            return RemediationAction.NONE
        return RemediationAction.SET_REPLICA_IDENTITY_FULL

    if full_identity:
        return RemediationAction.ADD_PRIMARY_KEY
    return RemediationAction.SET_REPLICA_IDENTITY_FULL_AND_ADD_PRIMARY_KEY


def render_remediation(
    action: RemediationAction,
    schema_name: str,
    table_name: str,
    columns: Sequence[str],
) -> str:
    """Render a remediation action as suggested SQL.

    The primary key over every column is a heuristic suggestion, not a
    guaranteed-correct key. Identifiers are expected to be quoted already.

    Returns:
        The suggested statement, or an empty string for ``NONE``
    """
    if action == RemediationAction.NONE:
        return ""

    prefix = f"ALTER TABLE {schema_name}.{table_name}"
    add_key = f"ADD PRIMARY KEY ({', '.join(columns)});"

    if action == RemediationAction.SET_REPLICA_IDENTITY_FULL:
        return f"{prefix} SET REPLICA IDENTITY FULL;"
    if action == RemediationAction.ADD_PRIMARY_KEY:
        return f"{prefix} {add_key}"
    return f"{prefix} SET REPLICA IDENTITY FULL; {add_key}"


def interpret_table_identity(rows) -> Interpretation:
    """Turn table identity rows into remediation statements.

    Rows are ``(schema_name, table_name, has_primary_key, replica_identity,
    columns)`` as returned by :data:`TABLE_IDENTITY_QUERY`.
    """
    statements = []
    for schema_name, table_name, has_primary_key, replica_identity, columns in rows:
        columns = list(columns or [])
        action = decide_remediation(has_primary_key, replica_identity, columns)
        statement = render_remediation(action, schema_name, table_name, columns)
        if statement:
            logger.debug(f"{schema_name}.{table_name}: {action.value}")
            statements.append(statement)
    return not statements, statements


def interpret_absence(rows) -> Interpretation:
    """Pass when the ``SELECT EXISTS (...)`` probe returned false."""
    rows = list(rows)
    exists = bool(rows and rows[0][0])
    return not exists, []


class Rule:
    """A named, read-only readiness check."""

    def __init__(
        self,
        name: str,
        title: str,
        scope: RuleScope,
        query: TextClause,
        interpret: Callable[..., Interpretation],
    ):
        self.name = name
        self.title = title
        self.scope = scope
        self.query = query
        self.interpret = interpret

    def __repr__(self) -> str:
        return f"Rule({self.name!r}, scope={self.scope.value})"


PRIMARY_KEY_RULE = Rule(
    name="primary_key_replica_identity",
    title="Checking tables for missing primary keys or REPLICA IDENTITY FULL",
    scope=RuleScope.DATABASE,
    query=TABLE_IDENTITY_QUERY,
    interpret=interpret_table_identity,
)

LARGE_OBJECTS_RULE = Rule(
    name="large_objects",
    title="Checking for incompatible pg_largeobjects",
    scope=RuleScope.DATABASE,
    query=LARGE_OBJECTS_QUERY,
    interpret=interpret_absence,
)

FOREIGN_TABLES_RULE = Rule(
    name="foreign_tables",
    title="Checking for foreign tables which will need to be recreated in the Green environment manually",
    scope=RuleScope.DATABASE,
    query=FOREIGN_TABLES_QUERY,
    interpret=interpret_absence,
)

LOGICAL_SLOTS_RULE = Rule(
    name="logical_replication_slots",
    title="Checking cluster-wide for logical replication slots",
    scope=RuleScope.CLUSTER,
    query=LOGICAL_SLOTS_QUERY,
    interpret=interpret_absence,
)

DATABASE_RULES = (PRIMARY_KEY_RULE, LARGE_OBJECTS_RULE, FOREIGN_TABLES_RULE)
CLUSTER_RULES = (LOGICAL_SLOTS_RULE,)
ALL_RULES = DATABASE_RULES + CLUSTER_RULES

RULES_BY_NAME = {rule.name: rule for rule in ALL_RULES}
