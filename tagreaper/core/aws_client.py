"""
AWS Client Module
=================

One boto3 session per run, shared by the lookup and deleter layers.

A deletion run works in a single region with a single set of credentials,
so every deleter receives the same :class:`AWSClient` and asks it for
service clients by name. Clients are built on first use and reused.

Example
-------
>>> from tagreaper.core.aws_client import AWSClient
>>>
>>> aws = AWSClient(region="eu-west-1", profile="sandbox")
>>> aws.validate_credentials()
>>> route53 = aws.get_client("route53")

Notes
-----
botocore's transport retries run in standard mode. Dependency violations,
throttling and 5xx responses on mutating calls are retried one level up by
:class:`tagreaper.core.retry.RetryPolicy`, which knows about cancellation
and the run's backoff settings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)

from tagreaper.core.exceptions import (
    AWSClientError,
    CredentialsError,
    RegionError,
    ServiceError,
)

logger = logging.getLogger(__name__)

# STS error codes meaning the key pair itself is wrong
INVALID_KEY_CODES = ("InvalidClientTokenId", "SignatureDoesNotMatch")

CREDENTIALS_HINT = (
    "Run 'aws configure', pass --profile, or export "
    "AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY"
)


class AWSClient:
    """
    Session and per-service client cache for one region.

    Parameters
    ----------
    region : str, default="us-east-1"
        Region every resource of the run lives in.
    profile : str, optional
        Named profile; the default credential chain is used when omitted.
    max_retries : int, default=3
        botocore transport attempts per request.
    timeout : int, default=30
        Connect and read timeout in seconds.

    Raises
    ------
    CredentialsError
        Unknown profile, missing or rejected credentials.
    RegionError
        No usable region.
    ServiceError
        A service outside :attr:`SUPPORTED_SERVICES`, or a client that
        botocore fails to build.
    """

    # Service name -> what TagReaper deletes there
    SUPPORTED_SERVICES = {
        "autoscaling": "groups and launch configurations",
        "ec2": "networking, instances, volumes and addresses",
        "elb": "classic load balancers",
        "iam": "instance profiles and roles",
        "route53": "hosted zones and record sets",
        "s3": "buckets and objects",
        "sts": "caller identity only",
    }

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        self.region = region
        self.profile = profile
        self.max_retries = max_retries
        self.timeout = timeout

        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._account_id: Optional[str] = None
        self._botocore_config = Config(
            region_name=region,
            retries={"mode": "standard", "max_attempts": max_retries},
            connect_timeout=timeout,
            read_timeout=timeout,
        )

    @property
    def session(self) -> boto3.Session:
        if self._session is None:
            self._session = self._open_session()
        return self._session

    def _open_session(self) -> boto3.Session:
        try:
            if self.profile:
                session = boto3.Session(profile_name=self.profile, region_name=self.region)
            else:
                session = boto3.Session(region_name=self.region)
        except ProfileNotFound:
            raise CredentialsError(
                f"Profile '{self.profile}' is not configured",
                details={"profile": self.profile, "hint": CREDENTIALS_HINT},
            )
        except NoRegionError:
            raise RegionError(f"No usable region: {self.region!r}", region=self.region)
        logger.debug(f"Opened session (region={self.region}, profile={self.profile})")
        return session

    def get_client(self, service_name: str) -> Any:
        """
        Return the cached client for ``service_name``, creating it if needed.

        Raises
        ------
        CredentialsError
            If the session cannot find credentials.
        ServiceError
            If the service is not one TagReaper deletes from, or botocore
            cannot build the client.
        """
        client = self._clients.get(service_name)
        if client is not None:
            return client

        if service_name not in self.SUPPORTED_SERVICES:
            raise ServiceError(
                f"TagReaper does not delete from '{service_name}'",
                service=service_name,
                region=self.region,
            )

        try:
            client = self.session.client(service_name, config=self._botocore_config)
        except AWSClientError:
            raise
        except NoCredentialsError:
            raise CredentialsError(
                "No AWS credentials found", details={"hint": CREDENTIALS_HINT}
            )
        except BotoCoreError as e:
            raise ServiceError(
                f"Cannot build {service_name} client: {e}",
                service=service_name,
                region=self.region,
            )

        self._clients[service_name] = client
        return client

    def validate_credentials(self) -> bool:
        """
        Check the credentials with STS GetCallerIdentity before deleting anything.

        The account id is cached for :meth:`get_account_id`.
        """
        try:
            identity = self.get_client("sts").get_caller_identity()
        except NoCredentialsError:
            raise CredentialsError("No AWS credentials found", details={"hint": CREDENTIALS_HINT})
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            message = "AWS rejected the access key" if code in INVALID_KEY_CODES else str(e)
            raise CredentialsError(message, details={"error_code": code}, service="sts")

        self._account_id = identity["Account"]
        logger.info(f"Running as {identity['Arn']} in {self.region}")
        return True

    def get_account_id(self) -> str:
        """Account id of the caller, used to build ARNs of deleted resources."""
        if self._account_id is None:
            try:
                self._account_id = self.get_client("sts").get_caller_identity()["Account"]
            except (ClientError, NoCredentialsError) as e:
                raise AWSClientError(f"Cannot determine the account id: {e}", service="sts")
        return self._account_id

    def __enter__(self) -> AWSClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._clients.clear()
        self._session = None

    def __repr__(self) -> str:
        return f"AWSClient(region={self.region!r}, profile={self.profile!r})"


__all__ = ["AWSClient"]
