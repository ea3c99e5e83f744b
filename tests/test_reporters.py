"""
Tests for the Reporter modules.
"""

import io
import json
import os

import pytest
from rich.console import Console

from tagreaper.core.exceptions import DeleteError
from tagreaper.core.logging import LogEntry
from tagreaper.core.resources import ResourceType
from tagreaper.deleters.base import DeleteResult, DeleteStatus, DeleteSummary
from tagreaper.orchestrator import DeletionReport
from tagreaper.reporters.cli_reporter import CLIReporter
from tagreaper.reporters.json_reporter import JSONReporter


@pytest.fixture
def sample_report():
    """Create a report with one deleted, one failed and one nested deletion."""
    group_summary = DeleteSummary(resource_type=ResourceType.SECURITY_GROUP)
    group_summary.add_result(
        DeleteResult(ResourceType.SECURITY_GROUP, "sg-111111", DeleteStatus.SUCCESS)
    )
    rules = DeleteSummary(resource_type=ResourceType.SECURITY_GROUP_RULE)
    rules.add_result(
        DeleteResult(
            ResourceType.SECURITY_GROUP_RULE,
            "sg-111111:ingress",
            DeleteStatus.SUCCESS,
            parent_type=ResourceType.SECURITY_GROUP,
            parent_name="sg-111111",
        )
    )
    group_summary.add_child(rules)

    subnet_summary = DeleteSummary(resource_type=ResourceType.SUBNET)
    subnet_summary.add_result(
        DeleteResult(
            ResourceType.SUBNET,
            "subnet-222222",
            DeleteStatus.FAILED,
            error_code="DependencyViolation",
            error_message="has dependencies",
        )
    )

    report = DeletionReport()
    report.add_summary(group_summary)
    report.add_summary(subnet_summary)
    report.complete()
    return report


@pytest.fixture
def buffer():
    return io.StringIO()


@pytest.fixture
def cli_reporter(buffer):
    return CLIReporter(console=Console(file=buffer, width=140))


class TestCLIReporter:
    """Tests for CLIReporter."""

    def test_report(self, cli_reporter, buffer, sample_report):
        """Counts are shown per type, sub-resources included."""
        cli_reporter.report(sample_report)

        output = buffer.getvalue()
        assert "Deletion Report" in output
        assert "Run completed" in output
        assert "AWS::EC2::SecurityGroupRule" in output
        assert "AWS::EC2::Subnet" in output
        assert "Total" in output
        assert "Would Delete" not in output

    def test_dry_run_report(self, cli_reporter, buffer):
        summary = DeleteSummary(resource_type=ResourceType.VPC)
        summary.add_result(DeleteResult(ResourceType.VPC, "vpc-1", DeleteStatus.DRY_RUN))
        report = DeletionReport(dry_run=True)
        report.add_summary(summary)

        cli_reporter.report(report)

        output = buffer.getvalue()
        assert "Dry-Run Report" in output
        assert "Would Delete" in output

    def test_empty_report(self, cli_reporter, buffer):
        cli_reporter.report(DeletionReport())
        assert "Nothing to delete." in buffer.getvalue()

    def test_aborted_report(self, cli_reporter, buffer, sample_report):
        sample_report.abort(DeleteError("Failed to delete EC2 Subnet subnet-222222"))

        cli_reporter.report(sample_report)

        output = buffer.getvalue()
        assert "Run aborted" in output
        assert "Failed to delete EC2 Subnet subnet-222222" in output

    def test_report_log_entries(self, cli_reporter, buffer):
        entries = [
            LogEntry(level="info", msg="Deleted resource", resource_name="vpc-1"),
            LogEntry(
                level="error",
                msg="Failed to delete resource",
                resource_type="AWS::IAM::Policy",
                resource_name="inline",
                aws_err_code="AccessDenied",
                parent_resource_type="AWS::IAM::Role",
                parent_resource_name="web-role",
            ),
        ]

        count = cli_reporter.report_log_entries(entries)

        output = buffer.getvalue()
        assert count == 1
        assert "Failed Deletions (1)" in output
        assert "AccessDenied" in output
        assert "web-role" in output
        assert "vpc-1" not in output

    def test_report_log_without_failures(self, cli_reporter, buffer):
        assert cli_reporter.report_log_entries([LogEntry(level="info")]) == 0
        assert "No failed deletions in the log." in buffer.getvalue()

    def test_truncate(self):
        assert CLIReporter._truncate("a" * 10, 8) == "aaaaa..."
        assert CLIReporter._truncate("short", 8) == "short"


class TestJSONReporter:
    """Tests for JSONReporter."""

    def test_to_dict(self, sample_report):
        data = JSONReporter().to_dict(sample_report)

        assert data["metadata"]["totals"] == {
            "deleted": 2,
            "failed": 1,
            "skipped": 0,
            "dry_run": 0,
        }
        assert data["metadata"]["aborted"] is False
        assert data["by_type"]["AWS::EC2::Subnet"]["failed"] == 1
        assert data["summaries"][0]["children"][0]["results"][0]["parent_name"] == "sg-111111"

    def test_report_to_file(self, tmp_path, sample_report):
        output_path = tmp_path / "report.json"

        filepath = JSONReporter(output_path=str(output_path)).report(sample_report)

        assert filepath == str(output_path)
        with open(filepath) as f:
            data = json.load(f)
        assert data["by_type"]["AWS::EC2::SecurityGroup"]["deleted"] == 1

    def test_default_filename(self, tmp_path, monkeypatch, sample_report):
        monkeypatch.chdir(tmp_path)

        filepath = JSONReporter().report(sample_report)

        assert os.path.basename(filepath).startswith("tagreaper_report_")
        assert os.path.exists(tmp_path / filepath)

    def test_to_string(self, sample_report):
        data = json.loads(JSONReporter(indent=None).to_string(sample_report))
        assert data["metadata"]["end_time"] is not None
