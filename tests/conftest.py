"""
Shared fixtures: moto-backed AWS, raw service clients and a quiet DeleteConfig.
"""

import io
import json
import logging

import boto3
import pytest
from moto import mock_aws
from rich.console import Console

from tagreaper.core.aws_client import AWSClient
from tagreaper.core.config import DeleteConfig
from tagreaper.core.retry import RetryPolicy


@pytest.fixture
def aws_credentials():
    """Fake credentials so boto3 never reaches a real account."""
    import os

    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Run the test inside moto's in-memory AWS."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """AWSClient shared by lookups and deleters under test."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Raw EC2 client for arranging resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def iam_client(mock_aws_environment):
    """Create a boto3 IAM client for setting up test resources."""
    return boto3.client("iam", region_name="us-east-1")


@pytest.fixture
def route53_client(mock_aws_environment):
    """Create a boto3 Route 53 client for setting up test resources."""
    return boto3.client("route53", region_name="us-east-1")


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test resources."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def vpc(ec2_client):
    """Non-default VPC to tear down."""
    response = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    vpc_id = response["Vpc"]["VpcId"]
    return vpc_id


@pytest.fixture
def subnet(ec2_client, vpc):
    """Subnet inside the test VPC."""
    response = ec2_client.create_subnet(
        VpcId=vpc,
        CidrBlock="10.0.1.0/24",
        AvailabilityZone="us-east-1a",
    )
    return response["Subnet"]["SubnetId"]


@pytest.fixture
def security_group(ec2_client, vpc):
    """Non-default security group inside the test VPC."""
    response = ec2_client.create_security_group(
        GroupName="test-sg",
        Description="reaper test group",
        VpcId=vpc,
    )
    return response["GroupId"]


@pytest.fixture
def output():
    """Buffer receiving the deletion output lines."""
    return io.StringIO()


@pytest.fixture
def config_factory(output):
    """Build DeleteConfigs that never sleep and print into ``output``."""

    def make_config(**overrides):
        settings = dict(
            retry_policy=RetryPolicy(max_retries=2, base_delay=0),
            wait_timeout=1,
            poll_interval=0,
            console=Console(file=output, soft_wrap=True, width=200),
            request_logger=logging.getLogger("tagreaper.tests.requests"),
            sleep=lambda seconds: None,
        )
        settings.update(overrides)
        return DeleteConfig(**settings)

    return make_config


@pytest.fixture
def config(config_factory):
    """DeleteConfig for a real (non dry-run) deletion that aborts on errors."""
    return config_factory()


@pytest.fixture
def lines(output):
    """Return the deletion output printed so far, one entry per line."""
    return lambda: [line for line in output.getvalue().splitlines() if line]


@pytest.fixture
def instance_profile(iam_client):
    """Create a role with an inline policy, added to an instance profile."""
    iam_client.create_role(
        RoleName="web-role",
        AssumeRolePolicyDocument=json.dumps(
            {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"Service": "ec2.amazonaws.com"},
                        "Action": "sts:AssumeRole",
                    }
                ],
            }
        ),
    )
    iam_client.put_role_policy(
        RoleName="web-role",
        PolicyName="inline",
        PolicyDocument=json.dumps(
            {
                "Version": "2012-10-17",
                "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"}],
            }
        ),
    )
    iam_client.create_instance_profile(InstanceProfileName="web-profile")
    iam_client.add_role_to_instance_profile(
        InstanceProfileName="web-profile", RoleName="web-role"
    )
    return "web-profile"
