"""
Tests for the AWS Client module.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tagreaper.core.aws_client import AWSClient
from tagreaper.core.exceptions import AWSClientError, CredentialsError, ServiceError


class TestAWSClient:
    """Tests for AWSClient class."""

    def test_session_is_lazy(self):
        """Constructing the client does not touch boto3."""
        client = AWSClient(region="eu-west-1", profile="does-not-exist")
        assert client._session is None
        assert client.region == "eu-west-1"

    @pytest.mark.parametrize("service", sorted(AWSClient.SUPPORTED_SERVICES))
    def test_supported_services(self, mock_aws_environment, service):
        client = AWSClient()
        assert client.get_client(service).meta.region_name == "us-east-1"

    def test_clients_are_cached(self, aws_client):
        """One client is built per service and reused by every deleter."""
        assert aws_client.get_client("s3") is aws_client.get_client("s3")

    def test_unsupported_service(self, aws_client):
        with pytest.raises(ServiceError) as exc_info:
            aws_client.get_client("rds")
        assert exc_info.value.details["service"] == "rds"

    def test_validate_credentials_caches_account(self, aws_client):
        assert aws_client.validate_credentials() is True
        assert aws_client._account_id == "123456789012"
        assert aws_client.get_account_id() == "123456789012"

    def test_transport_retries(self):
        client = AWSClient(max_retries=5, timeout=60)
        assert client._botocore_config.retries == {"mode": "standard", "max_attempts": 5}
        assert client._botocore_config.read_timeout == 60

    def test_context_manager_drops_clients(self, mock_aws_environment):
        with AWSClient() as client:
            client.get_client("ec2")
            assert "ec2" in client._clients
        assert client._clients == {}
        assert client._session is None


class TestAWSClientErrors:
    """Tests for AWSClient error handling."""

    def test_unknown_profile(self, mock_aws_environment):
        """An unknown profile fails once a client is requested."""
        client = AWSClient(profile="nonexistent-profile-xyz")
        with pytest.raises(CredentialsError) as exc_info:
            client.get_client("ec2")
        assert exc_info.value.details["profile"] == "nonexistent-profile-xyz"

    def test_rejected_access_key(self):
        client = AWSClient()
        sts = MagicMock()
        sts.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "InvalidClientTokenId", "Message": "bad key"}},
            "GetCallerIdentity",
        )
        client._clients["sts"] = sts

        with pytest.raises(CredentialsError) as exc_info:
            client.validate_credentials()

        assert exc_info.value.details["error_code"] == "InvalidClientTokenId"

    def test_account_id_failure(self):
        client = AWSClient()
        sts = MagicMock()
        sts.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}},
            "GetCallerIdentity",
        )
        client._clients["sts"] = sts

        with pytest.raises(AWSClientError):
            client.get_account_id()
