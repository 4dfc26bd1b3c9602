"""Human readable rendering of readiness reports.

Report text is emitted through the ``bg_precheck.report`` logger with a bare
message format, so the same lines reach stdout and, when enabled, the
timestamped log file.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .constants import LOGGING_DEFAULTS, PASS_MESSAGES
from .rules import CLUSTER_RULES, DATABASE_RULES, RULES_BY_NAME
from .schemas import ClusterTarget, ReadinessReport, RuleResult

REPORT_LOGGER_NAME = "bg_precheck.report"

SECTION = "=" * 60
WIDE_SECTION = "=" * 100

report_logger = logging.getLogger(REPORT_LOGGER_NAME)


def log_file_name(prefix: str, now: Optional[datetime] = None) -> str:
    """``{prefix}_{YYYYmmdd_HHMMSS}.log`` for the invocation time."""
    now = now or datetime.now()
    return f"{prefix}_{now.strftime(LOGGING_DEFAULTS['timestamp_format'])}.log"


def configure_report_output(log_file: Optional[Path] = None, stream=None) -> logging.Logger:
    """Attach stdout (and optionally file) handlers to the report logger.

    Calling it again replaces the handlers from a previous call.
    """
    for handler in list(report_logger.handlers):
        report_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(message)s")
    console = logging.StreamHandler(stream or sys.stdout)
    console.setFormatter(formatter)
    report_logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        report_logger.addHandler(file_handler)

    report_logger.setLevel(logging.INFO)
    report_logger.propagate = False
    return report_logger


def emit(lines: Iterable[str]) -> None:
    for line in lines:
        report_logger.info(line)


def render_rule_result(result: RuleResult) -> List[str]:
    """Lines for one rule outcome."""
    rule = RULES_BY_NAME.get(result.rule)
    lines = []
    if rule is not None and result.rule != "primary_key_replica_identity":
        width = WIDE_SECTION if len(rule.title) > len(SECTION) else SECTION
        lines += ["", width, rule.title, " ... ... "]

    if result.passed:
        message = PASS_MESSAGES.get(result.rule, f"{result.rule}: passed")
        lines.append(message.format(database=result.database))
    elif result.statements:
        lines.append("")
        lines.extend(result.detail.splitlines())
    elif result.error:
        lines += ["", result.detail]
    else:
        lines += ["", f"WARNING: {result.detail}"]
    return lines


def render_database_section(database: str, results: Iterable[RuleResult]) -> List[str]:
    lines = ["", "", SECTION, f"Checking database: {database}", SECTION]
    for result in results:
        lines.extend(render_rule_result(result))
    return lines


def render_cluster_section(host: str, results: Iterable[RuleResult]) -> List[str]:
    lines = ["", WIDE_SECTION, f"Checking cluster-wide for logical replication slots: {host}", WIDE_SECTION]
    for result in results:
        if result.passed:
            lines.append(PASS_MESSAGES.get(result.rule, f"{result.rule}: passed"))
        elif result.error:
            lines.append(result.detail)
        else:
            lines.append(f"WARNING: {result.detail}")
    return lines


def render_verdict(host: str, ready: bool) -> List[str]:
    if ready:
        return [
            "",
            "",
            WIDE_SECTION,
            f"Cluster {host} is READY for usage with Blue/Green Deployments",
            WIDE_SECTION,
        ]
    return [
        "",
        "",
        WIDE_SECTION,
        f"Cluster {host} is NOT READY for usage with Blue/Green Deployments",
        "Please check the script output, fix any issues listed, and try again.",
        WIDE_SECTION,
    ]


def render_report(report: ReadinessReport) -> List[str]:
    """Render a whole readiness report, databases first, verdict last."""
    database_rule_names = {rule.name for rule in DATABASE_RULES}
    cluster_rule_names = {rule.name for rule in CLUSTER_RULES}

    lines = []
    for database in report.databases:
        results = [
            result for result in report.results_for(database)
            if result.rule in database_rule_names
        ]
        lines.extend(render_database_section(database, results))

    cluster_results = [
        result for result in report.results_for(None)
        if result.rule in cluster_rule_names
    ]
    lines.extend(render_cluster_section(report.target, cluster_results))
    lines.extend(render_verdict(report.target, report.ready))
    return lines


def render_endpoint_header(target: ClusterTarget) -> List[str]:
    return ["", f"Processing endpoint: {target.describe()}"]


def render_connection_failure(target: ClusterTarget, error: Exception) -> List[str]:
    return [
        "",
        WIDE_SECTION,
        f"ERROR: {error}",
        f"Cluster {target.host} was not checked.",
        WIDE_SECTION,
    ]
