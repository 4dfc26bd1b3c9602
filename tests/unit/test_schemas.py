"""Unit tests for Pydantic schemas."""
import pytest
from pydantic import ValidationError

from bg_precheck.schemas import (
    ClusterTarget,
    CredentialSource,
    ReadinessReport,
    RuleResult,
    RuleScope,
)


def _result(passed: bool, rule: str = "large_objects", database: str = "orders") -> RuleResult:
    return RuleResult(
        rule=rule,
        scope=RuleScope.DATABASE,
        target="cluster.example.com",
        database=database,
        passed=passed,
    )


class TestClusterTarget:
    """Test ClusterTarget schema."""

    def test_defaults(self):
        target = ClusterTarget(host="cluster.example.com")
        assert target.port == 5432
        assert target.user == "postgres"
        assert target.database is None
        assert target.credential_source == CredentialSource.ENVIRONMENT
        assert target.single_database is False

    def test_single_database(self):
        target = ClusterTarget(host="cluster.example.com", database="orders")
        assert target.single_database is True
        assert target.describe() == "cluster.example.com:orders"

    def test_immutable(self):
        target = ClusterTarget(host="cluster.example.com")
        with pytest.raises(ValidationError):
            target.host = "other.example.com"

    def test_password_hidden_in_repr(self):
        target = ClusterTarget(host="cluster.example.com", password="hunter2")
        assert "hunter2" not in repr(target)
        assert target.password.get_secret_value() == "hunter2"

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_out_of_range(self, port):
        with pytest.raises(ValidationError) as exc_info:
            ClusterTarget(host="cluster.example.com", port=port)
        assert any(e['loc'] == ('port',) for e in exc_info.value.errors())

    def test_blank_host_rejected(self):
        with pytest.raises(ValidationError):
            ClusterTarget(host="   ")


class TestReadinessReport:
    """Test readiness aggregation."""

    def test_empty_report_is_ready(self):
        report = ReadinessReport(target="cluster.example.com")
        assert report.ready is True
        assert report.failures == []

    def test_all_passed_is_ready(self):
        report = ReadinessReport(target="cluster.example.com", databases=["orders"])
        report.add(_result(True))
        report.add(_result(True, rule="foreign_tables"))
        assert report.ready is True

    def test_any_failure_is_not_ready(self):
        report = ReadinessReport(target="cluster.example.com", databases=["orders"])
        report.add(_result(True))
        report.add(_result(False, rule="foreign_tables"))
        report.add(_result(True, rule="primary_key_replica_identity"))

        assert report.ready is False
        assert [r.rule for r in report.failures] == ["foreign_tables"]

    def test_ready_is_serialized(self):
        report = ReadinessReport(target="cluster.example.com")
        report.add(_result(False))
        assert report.model_dump()["ready"] is False

    def test_results_for_database(self):
        report = ReadinessReport(target="cluster.example.com", databases=["orders", "users"])
        report.add(_result(True, database="orders"))
        report.add(_result(True, database="users"))
        report.add(RuleResult(
            rule="logical_replication_slots",
            scope=RuleScope.CLUSTER,
            target="cluster.example.com",
            passed=True,
        ))

        assert [r.database for r in report.results_for("users")] == ["users"]
        assert [r.rule for r in report.results_for(None)] == ["logical_replication_slots"]

    def test_rule_result_is_immutable(self):
        result = _result(True)
        with pytest.raises(ValidationError):
            result.passed = False
