"""Blue/Green readiness validation for PostgreSQL clusters.

This module evaluates the rule catalogue from :mod:`bg_precheck.rules`
against every database of a cluster target and folds the outcomes into a
:class:`~bg_precheck.schemas.ReadinessReport`.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.engine import Connection

from .constants import WARNINGS
from .database import ClusterConnector, enumerate_databases, run_query
from .exceptions import ClusterConnectionError, QueryError
from .rules import CLUSTER_RULES, DATABASE_RULES, Rule
from .schemas import ClusterTarget, ReadinessReport, RuleResult, RuleScope

logger = logging.getLogger(__name__)


def _failure_detail(rule: Rule, database: Optional[str], statements: List[str]) -> str:
    if statements:
        return f"Proposed commands to fix tables in {database}:\n" + "\n".join(statements)
    return WARNINGS[rule.name].format(database=database)


def evaluate_rule(
    conn: Connection,
    rule: Rule,
    target: ClusterTarget,
    database: Optional[str] = None,
) -> RuleResult:
    """Run one rule and interpret its result.

    A failing query is reported as a failed result carrying the error text;
    it is never raised.

    Args:
        conn: Connection to ``database`` (or to the cluster for cluster rules)
        rule: Rule to evaluate
        target: Cluster the connection belongs to
        database: Database being checked; None for cluster-scoped rules

    Returns:
        RuleResult for the (rule, database) pair
    """
    if rule.scope == RuleScope.CLUSTER:
        database = None

    try:
        rows = run_query(conn, rule.name, rule.query)
    except QueryError as e:
        logger.error(f"{rule.name} failed on {target.host}/{database or '*'}: {e.reason}")
        return RuleResult(
            rule=rule.name,
            scope=rule.scope,
            target=target.host,
            database=database,
            passed=False,
            detail=f"ERROR: {rule.name} check could not run: {e.reason}",
            error=e.reason,
        )

    passed, statements = rule.interpret(rows)
    logger.info(f"{rule.name} on {target.host}/{database or '*'}: {'passed' if passed else 'failed'}")
    return RuleResult(
        rule=rule.name,
        scope=rule.scope,
        target=target.host,
        database=database,
        passed=passed,
        detail=None if passed else _failure_detail(rule, database, statements),
        statements=statements,
    )


def validate_database(
    conn: Connection,
    target: ClusterTarget,
    database: str,
    rules: Iterable[Rule] = DATABASE_RULES,
) -> List[RuleResult]:
    """Evaluate every per-database rule, in order, on one database."""
    return [evaluate_rule(conn, rule, target, database) for rule in rules]


def validate_cluster(
    conn: Connection,
    target: ClusterTarget,
    rules: Iterable[Rule] = CLUSTER_RULES,
) -> List[RuleResult]:
    """Evaluate the cluster-wide rules once."""
    return [evaluate_rule(conn, rule, target) for rule in rules]


def _unreachable_results(
    target: ClusterTarget,
    database: str,
    error: ClusterConnectionError,
    rules: Iterable[Rule],
) -> List[RuleResult]:
    return [
        RuleResult(
            rule=rule.name,
            scope=rule.scope,
            target=target.host,
            database=database,
            passed=False,
            detail=f"ERROR: could not connect to database {database}: {error.reason}",
            error=error.reason,
        )
        for rule in rules
    ]


def check_cluster_readiness(
    target: ClusterTarget,
    connector: Optional[ClusterConnector] = None,
    database_rules: Iterable[Rule] = DATABASE_RULES,
    cluster_rules: Iterable[Rule] = CLUSTER_RULES,
) -> ReadinessReport:
    """Run the full readiness check for one cluster target.

    Databases are enumerated through the cluster connection, each database is
    checked over its own connection, and the cluster rules then run once on
    the cluster connection.

    Args:
        target: Cluster to check
        connector: Connection factory; one is built from ``target`` if omitted
        database_rules: Rules run once per database
        cluster_rules: Rules run once per target

    Returns:
        ReadinessReport with one result per (rule, database) pair plus one
        per cluster rule

    Raises:
        ClusterConnectionError: If the cluster cannot be reached
        QueryError: If the databases cannot be enumerated
    """
    connector = connector or ClusterConnector(target)
    database_rules = tuple(database_rules)
    cluster_rules = tuple(cluster_rules)

    with connector.connect() as cluster_conn:
        databases = enumerate_databases(target, cluster_conn)
        report = ReadinessReport(target=target.host, databases=databases)

        for database in databases:
            logger.info(f"Checking database: {database}")
            try:
                with connector.connect(database) as conn:
                    results = validate_database(conn, target, database, database_rules)
            except ClusterConnectionError as e:
                results = _unreachable_results(target, database, e, database_rules)
            for result in results:
                report.add(result)

        logger.info(f"Checking cluster-wide rules on {target.host}")
        for result in validate_cluster(cluster_conn, target, cluster_rules):
            report.add(result)

    verdict = "READY" if report.ready else "NOT READY"
    logger.info(f"Cluster {target.host} is {verdict} ({len(report.failures)} failing check(s))")
    return report
