"""
Tests for the read-only resource lookups.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tagreaper.core.exceptions import CredentialsError, ResourceFetchError
from tagreaper.lookup import ResourceLookup, chunked, unique, zone_id


@pytest.fixture
def lookup(aws_client):
    return ResourceLookup(aws_client)


class TestEC2Lookup:
    """Tests for EC2Lookup against moto."""

    def test_default_vpc_is_excluded(self, lookup, ec2_client, vpc):
        """The default VPC is never returned."""
        default_vpc = ec2_client.describe_vpcs(
            Filters=[{"Name": "is-default", "Values": ["true"]}]
        )["Vpcs"][0]["VpcId"]

        vpcs = lookup.ec2.describe_vpcs([default_vpc, vpc])

        assert [v["VpcId"] for v in vpcs] == [vpc]

    def test_subnets_by_vpc(self, lookup, vpc, subnet):
        subnets = lookup.ec2.describe_subnets(vpc_ids=[vpc])
        assert [s["SubnetId"] for s in subnets] == [subnet]

    def test_default_security_group_is_excluded(self, lookup, vpc, security_group):
        """The VPC's default group cannot be deleted and is left out."""
        groups = lookup.ec2.describe_security_groups(vpc_ids=[vpc])
        assert [g["GroupId"] for g in groups] == [security_group]

    def test_main_route_table_is_excluded(self, lookup, ec2_client, vpc):
        route_table = ec2_client.create_route_table(VpcId=vpc)["RouteTable"]["RouteTableId"]

        tables = lookup.ec2.describe_route_tables(vpc_ids=[vpc])

        assert [t["RouteTableId"] for t in tables] == [route_table]

    def test_internet_gateways_by_vpc(self, lookup, ec2_client, vpc):
        gateway = ec2_client.create_internet_gateway()["InternetGateway"]["InternetGatewayId"]
        ec2_client.attach_internet_gateway(InternetGatewayId=gateway, VpcId=vpc)

        gateways = lookup.ec2.describe_internet_gateways(vpc_ids=[vpc])

        assert [g["InternetGatewayId"] for g in gateways] == [gateway]

    def test_unknown_ids_return_nothing(self, lookup, mock_aws_environment):
        """Filters on ids that do not exist return an empty result."""
        assert lookup.ec2.describe_subnets(ids=["subnet-0123456789abcdef0"]) == []

    def test_empty_ids_do_not_call_aws(self):
        """An empty id list is answered without an API call."""
        aws_client = MagicMock(region="us-east-1")
        lookup = ResourceLookup(aws_client)

        assert lookup.ec2.describe_vpcs([]) == []
        aws_client.get_client.assert_not_called()


class TestLookupErrors:
    """Tests for error translation in BaseLookup."""

    def _lookup_with_error(self, code):
        client = MagicMock()
        client.can_paginate.return_value = False
        client.describe_vpcs.side_effect = ClientError(
            {"Error": {"Code": code, "Message": "denied"}}, "DescribeVpcs"
        )
        aws_client = MagicMock(region="us-east-1")
        aws_client.get_client.return_value = client
        return ResourceLookup(aws_client)

    def test_not_found_is_empty(self):
        lookup = self._lookup_with_error("InvalidVpcID.NotFound")
        assert lookup.ec2.describe_vpcs(["vpc-1"]) == []

    def test_other_errors_raise_fetch_error(self):
        """AWS errors carry their code in the exception details."""
        lookup = self._lookup_with_error("UnauthorizedOperation")

        with pytest.raises(ResourceFetchError) as exc_info:
            lookup.ec2.describe_vpcs(["vpc-1"])

        assert exc_info.value.details["aws_err_code"] == "UnauthorizedOperation"
        assert exc_info.value.details["resource_type"] == "AWS::EC2::VPC"

    def test_credential_errors_raise_credentials_error(self):
        lookup = self._lookup_with_error("AuthFailure")

        with pytest.raises(CredentialsError):
            lookup.ec2.describe_vpcs(["vpc-1"])


class TestServiceLookups:
    """Tests for the IAM, S3 and Route 53 lookups against moto."""

    def test_instance_profiles_and_policies(self, lookup, instance_profile):
        profiles = lookup.iam.get_instance_profiles(["web-profile", "missing"])

        assert [p["InstanceProfileName"] for p in profiles] == ["web-profile"]
        assert [r["RoleName"] for r in profiles[0]["Roles"]] == ["web-role"]
        assert lookup.iam.list_role_policy_names("web-role") == ["inline"]

    def test_object_keys(self, lookup, s3_client):
        s3_client.create_bucket(Bucket="reaper-bucket")
        s3_client.put_object(Bucket="reaper-bucket", Key="a.txt", Body=b"a")

        assert [b["Name"] for b in lookup.s3.get_buckets(["reaper-bucket"])] == ["reaper-bucket"]
        assert lookup.s3.list_object_keys("reaper-bucket") == ["a.txt"]

    def test_object_keys_of_missing_bucket(self, lookup, mock_aws_environment):
        assert lookup.s3.list_object_keys("no-such-bucket") == []

    def test_record_sets_exclude_ns_and_soa(self, lookup, route53_client):
        zone = route53_client.create_hosted_zone(
            Name="example.com", CallerReference="public"
        )["HostedZone"]
        route53_client.change_resource_record_sets(
            HostedZoneId=zone["Id"],
            ChangeBatch={
                "Changes": [
                    {
                        "Action": "CREATE",
                        "ResourceRecordSet": {
                            "Name": "app.example.com",
                            "Type": "A",
                            "TTL": 300,
                            "ResourceRecords": [{"Value": "10.0.0.1"}],
                        },
                    }
                ]
            },
        )

        record_sets = lookup.route53.list_record_sets(zone["Id"])

        assert [r["Type"] for r in record_sets] == ["A"]
        assert [zone_id(z["Id"]) for z in lookup.route53.get_hosted_zones([zone["Id"]])] == [
            zone_id(zone["Id"])
        ]


class TestHelpers:
    def test_chunked(self):
        assert list(chunked(["a", "b", "c"], 2)) == [["a", "b"], ["c"]]

    def test_unique(self):
        assert unique(["a", "", "b", "a", None]) == ["a", "b"]

    def test_zone_id(self):
        assert zone_id("/hostedzone/Z123") == "Z123"
        assert zone_id("Z123") == "Z123"
