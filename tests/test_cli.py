"""
Tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from tagreaper.main import cli

ACCOUNT = "123456789012"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def bucket(s3_client):
    """Create a bucket with one object."""
    s3_client.create_bucket(Bucket="reaper-bucket")
    s3_client.put_object(Bucket="reaper-bucket", Key="a.txt", Body=b"a")
    return "reaper-bucket"


class TestDeleteCommand:
    """Tests for 'tagreaper delete'."""

    def test_dry_run(self, runner, tmp_path, subnet, bucket):
        """Dry-run prints what would be deleted and leaves everything in place."""
        arns = {
            "ARNs": [
                f"arn:aws:ec2:us-east-1:{ACCOUNT}:subnet/{subnet}",
                f"arn:aws:s3:::{bucket}",
                f"arn:aws:rds:us-east-1:{ACCOUNT}:db:main",
            ]
        }

        result = runner.invoke(
            cli,
            ["delete", "--dry-run", "--log-dir", str(tmp_path)],
            input=json.dumps(arns),
        )

        assert result.exit_code == 0, result.output
        assert f"(dry-run) Deleted EC2 Subnet {subnet}" in result.output
        assert f"(dry-run) Deleted S3 Bucket {bucket}" in result.output
        assert "DeletedARNs" not in result.output

    def test_delete_with_yes(self, runner, tmp_path, s3_client, bucket):
        result = runner.invoke(
            cli,
            ["delete", "--yes", "--log-dir", str(tmp_path), "-o", str(tmp_path / "report.json")],
            input=f"arn:aws:s3:::{bucket}\n",
        )

        assert result.exit_code == 0, result.output
        assert f"Deleted S3 Bucket {bucket}" in result.output
        assert f'"arn:aws:s3:::{bucket}"' in result.output
        assert s3_client.list_buckets()["Buckets"] == []
        with open(tmp_path / "report.json") as f:
            assert json.load(f)["metadata"]["totals"]["deleted"] == 2
        assert len(list(tmp_path.glob("tagreaper-*.log"))) == 1

    def test_confirmation_declined(self, runner, tmp_path, s3_client, bucket):
        input_file = tmp_path / "arns.txt"
        input_file.write_text(f"arn:aws:s3:::{bucket}\n")

        result = runner.invoke(cli, ["delete", str(input_file)], input="n\n")

        assert result.exit_code == 0, result.output
        assert "Deletion cancelled by user." in result.output
        assert [b["Name"] for b in s3_client.list_buckets()["Buckets"]] == [bucket]

    def test_nothing_to_delete(self, runner, mock_aws_environment):
        result = runner.invoke(cli, ["delete"], input="")

        assert result.exit_code == 0
        assert "Nothing to delete." in result.output

    def test_invalid_input(self, runner, mock_aws_environment):
        result = runner.invoke(cli, ["delete"], input='{"ARNs": "not-a-list"}')

        assert result.exit_code == 1
        assert "Invalid input" in result.output


class TestReportCommand:
    """Tests for 'tagreaper report'."""

    def test_report(self, runner, tmp_path):
        log_file = tmp_path / "tagreaper-20240115_103000.log"
        log_file.write_text(
            json.dumps({"level": "info", "msg": "Deleted resource", "resource_name": "vpc-1"})
            + "\n"
            + json.dumps(
                {
                    "level": "error",
                    "msg": "Failed to delete resource",
                    "resource_type": "AWS::EC2::Subnet",
                    "resource_name": "subnet-1",
                    "aws_err_code": "DependencyViolation",
                }
            )
            + "\n"
        )

        result = runner.invoke(cli, ["report", str(log_file)])

        assert result.exit_code == 0, result.output
        assert "Failed Deletions (1)" in result.output
        assert "subnet-1" in result.output

    def test_invalid_log(self, runner, tmp_path):
        log_file = tmp_path / "broken.log"
        log_file.write_text("not json\n")

        result = runner.invoke(cli, ["report", str(log_file)])

        assert result.exit_code == 1
        assert "Invalid log file" in result.output


class TestValidateCommand:
    """Tests for 'tagreaper validate'."""

    def test_validate(self, runner, mock_aws_environment):
        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 0, result.output
        assert f"Account ID: {ACCOUNT}" in result.output
