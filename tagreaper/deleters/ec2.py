"""
Deleters for EC2 resources.

Most EC2 types are deleted with a single call once their blocking
sub-resources are gone:

- network interfaces: detach non-primary attachments first;
- network ACLs: delete non-default entries first;
- route tables: delete non-local routes first;
- security groups: revoke ingress and egress rules of every group first;
- internet and VPN gateways: detach from their VPCs first;
- VPCs: disassociate IPv6 CIDR blocks first;
- VPN connections: delete static routes first.

Instances and NAT gateways are deleted asynchronously by AWS; their
deleters wait until AWS reports them gone.
"""

import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ..core.config import DeleteConfig
from ..core.resources import ResourceType
from ..core.retry import error_code, error_message, is_not_found
from ..lookup import chunked
from .base import DeleteSummary, RecordDeleter, ResourceDeleter, SubResourceDeleter

logger = logging.getLogger(__name__)

# Rule number of the catch-all deny entry every network ACL carries
DEFAULT_ACL_RULE_NUMBER = 32767

TERMINATE_CHUNK_SIZE = 100
NAT_GATEWAY_TERMINAL_STATES = frozenset({"deleted", "failed"})
DETACHED_STATES = frozenset({"detaching", "detached"})


# =============================================================================
# Sub-resources
# =============================================================================


class NetworkInterfaceAttachmentDeleter(SubResourceDeleter):
    """Detaches a network interface from its instance."""

    resource_type = ResourceType.NETWORK_INTERFACE_ATTACHMENT
    parent_resource_type = ResourceType.NETWORK_INTERFACE
    description = "EC2 NetworkInterfaceAttachment"
    operation_name = "detach_network_interface"


class InternetGatewayAttachmentDeleter(SubResourceDeleter):
    resource_type = ResourceType.INTERNET_GATEWAY_ATTACHMENT
    parent_resource_type = ResourceType.INTERNET_GATEWAY
    description = "EC2 InternetGatewayAttachment"
    operation_name = "detach_internet_gateway"


class NetworkAclEntryDeleter(SubResourceDeleter):
    resource_type = ResourceType.NETWORK_ACL_ENTRY
    parent_resource_type = ResourceType.NETWORK_ACL
    description = "EC2 NetworkAclEntry"
    operation_name = "delete_network_acl_entry"


class RouteDeleter(SubResourceDeleter):
    resource_type = ResourceType.ROUTE
    parent_resource_type = ResourceType.ROUTE_TABLE
    description = "EC2 Route"
    operation_name = "delete_route"


class VpcCidrBlockAssociationDeleter(SubResourceDeleter):
    resource_type = ResourceType.VPC_CIDR_BLOCK_ASSOCIATION
    parent_resource_type = ResourceType.VPC
    description = "EC2 VPCCidrBlockAssociation"
    operation_name = "disassociate_vpc_cidr_block"


class VpnConnectionRouteDeleter(SubResourceDeleter):
    resource_type = ResourceType.VPN_CONNECTION_ROUTE
    parent_resource_type = ResourceType.VPN_CONNECTION
    description = "EC2 VPNConnectionRoute"
    operation_name = "delete_vpn_connection_route"


class VpnGatewayAttachmentDeleter(SubResourceDeleter):
    resource_type = ResourceType.VPN_GATEWAY_ATTACHMENT
    parent_resource_type = ResourceType.VPN_GATEWAY
    description = "EC2 VPNGatewayAttachment"
    operation_name = "detach_vpn_gateway"


class SecurityGroupRuleDeleter(SubResourceDeleter):
    """
    Revokes the rules of one security group.

    Names are ``<group-id>:ingress`` and ``<group-id>:egress``; the direction
    picks the revoke call.
    """

    resource_type = ResourceType.SECURITY_GROUP_RULE
    parent_resource_type = ResourceType.SECURITY_GROUP
    description = "EC2 SecurityGroupRule"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        for name in self._names():
            if name.endswith(":egress"):
                operation = self.client.revoke_security_group_egress
            else:
                operation = self.client.revoke_security_group_ingress
            self._execute(config, summary, name, operation, **self.call_params[name])


# =============================================================================
# Network
# =============================================================================


class VpcDeleter(RecordDeleter):
    resource_type = ResourceType.VPC
    description = "EC2 VPC"
    id_key = "VpcId"
    operation_name = "delete_vpc"
    param_name = "VpcId"

    def _fetch(self, names: List[str]) -> List[Dict[str, Any]]:
        return self.lookup.ec2.describe_vpcs(names)

    def _clear_blocking(self, config, summary, record):
        associations = [
            a for a in record.get("Ipv6CidrBlockAssociationSet", [])
            if a.get("Ipv6CidrBlockState", {}).get("State") == "associated"
        ]
        if not associations:
            return
        deleter = VpcCidrBlockAssociationDeleter(self.aws_client, record["VpcId"], lookup=self.lookup)
        for association in associations:
            association_id = association["AssociationId"]
            deleter.add_resource(association_id, AssociationId=association_id)
        self._delete_children(config, summary, deleter)


class SubnetDeleter(RecordDeleter):
    resource_type = ResourceType.SUBNET
    description = "EC2 Subnet"
    id_key = "SubnetId"
    operation_name = "delete_subnet"
    param_name = "SubnetId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_subnets(ids=names)


class SecurityGroupDeleter(RecordDeleter):
    """
    Security groups may reference each other, so the rules of every group
    are revoked before the first group is deleted.
    """

    resource_type = ResourceType.SECURITY_GROUP
    description = "EC2 SecurityGroup"
    id_key = "GroupId"
    operation_name = "delete_security_group"
    param_name = "GroupId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_security_groups(ids=names)

    def _clear_blocking(self, config, summary, record):
        group_id = record["GroupId"]
        deleter = SecurityGroupRuleDeleter(self.aws_client, group_id, lookup=self.lookup)
        if record.get("IpPermissions"):
            deleter.add_resource(
                f"{group_id}:ingress",
                GroupId=group_id,
                IpPermissions=record["IpPermissions"],
            )
        if record.get("IpPermissionsEgress"):
            deleter.add_resource(
                f"{group_id}:egress",
                GroupId=group_id,
                IpPermissions=record["IpPermissionsEgress"],
            )
        self._delete_children(config, summary, deleter)


class NetworkAclDeleter(RecordDeleter):
    resource_type = ResourceType.NETWORK_ACL
    description = "EC2 NetworkAcl"
    id_key = "NetworkAclId"
    operation_name = "delete_network_acl"
    param_name = "NetworkAclId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_network_acls(ids=names)

    def _clear_blocking(self, config, summary, record):
        acl_id = record["NetworkAclId"]
        deleter = NetworkAclEntryDeleter(self.aws_client, acl_id, lookup=self.lookup)
        for entry in record.get("Entries", []):
            if entry["RuleNumber"] == DEFAULT_ACL_RULE_NUMBER:
                continue
            direction = "egress" if entry.get("Egress") else "ingress"
            deleter.add_resource(
                f"{acl_id}:{direction}:{entry['RuleNumber']}",
                NetworkAclId=acl_id,
                RuleNumber=entry["RuleNumber"],
                Egress=bool(entry.get("Egress")),
            )
        self._delete_children(config, summary, deleter)


class RouteTableDeleter(RecordDeleter):
    resource_type = ResourceType.ROUTE_TABLE
    description = "EC2 RouteTable"
    id_key = "RouteTableId"
    operation_name = "delete_route_table"
    param_name = "RouteTableId"

    DESTINATION_KEYS = (
        "DestinationCidrBlock",
        "DestinationIpv6CidrBlock",
        "DestinationPrefixListId",
    )

    def _fetch(self, names):
        return self.lookup.ec2.describe_route_tables(ids=names)

    def _clear_blocking(self, config, summary, record):
        table_id = record["RouteTableId"]
        deleter = RouteDeleter(self.aws_client, table_id, lookup=self.lookup)
        for route in record.get("Routes", []):
            # The local route goes away with the table
            if route.get("GatewayId") == "local":
                continue
            for key in self.DESTINATION_KEYS:
                if route.get(key):
                    deleter.add_resource(
                        f"{table_id}:{route[key]}",
                        RouteTableId=table_id,
                        **{key: route[key]},
                    )
                    break
        self._delete_children(config, summary, deleter)


class RouteTableAssociationDeleter(RecordDeleter):
    resource_type = ResourceType.ROUTE_TABLE_ASSOCIATION
    description = "EC2 RouteTableAssociation"
    id_key = "RouteTableAssociationId"
    operation_name = "disassociate_route_table"
    param_name = "AssociationId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_route_table_associations(names)


class InternetGatewayDeleter(RecordDeleter):
    resource_type = ResourceType.INTERNET_GATEWAY
    description = "EC2 InternetGateway"
    id_key = "InternetGatewayId"
    operation_name = "delete_internet_gateway"
    param_name = "InternetGatewayId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_internet_gateways(ids=names)

    def _clear_blocking(self, config, summary, record):
        gateway_id = record["InternetGatewayId"]
        deleter = InternetGatewayAttachmentDeleter(self.aws_client, gateway_id, lookup=self.lookup)
        for attachment in record.get("Attachments", []):
            deleter.add_resource(
                attachment["VpcId"],
                InternetGatewayId=gateway_id,
                VpcId=attachment["VpcId"],
            )
        self._delete_children(config, summary, deleter)


class NatGatewayDeleter(ResourceDeleter):
    """NAT gateways are deleted asynchronously; waits for ``deleted``."""

    resource_type = ResourceType.NAT_GATEWAY
    description = "EC2 NatGateway"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = self._names()
        gateways = self._resolve(
            config, summary, lambda: self.lookup.ec2.describe_nat_gateways(ids=names)
        )
        if gateways is None:
            return
        found = {g["NatGatewayId"] for g in gateways}
        self._skip_missing(summary, found, names)

        deleting = []
        for name in names:
            if name in found and self._execute(
                config, summary, name, self.client.delete_nat_gateway,
                record=False, NatGatewayId=name,
            ):
                deleting.append(name)

        self._wait_for_deletion(config, summary, deleting, self._pending)

    def _pending(self, names: List[str]) -> List[str]:
        states = self.lookup.ec2.nat_gateway_states(names)
        return [
            name for name, state in states.items()
            if state not in NAT_GATEWAY_TERMINAL_STATES
        ]


# =============================================================================
# Compute and Interfaces
# =============================================================================


class InstanceDeleter(ResourceDeleter):
    """Terminates instances in batches and waits until they are terminated."""

    resource_type = ResourceType.INSTANCE
    description = "EC2 Instance"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = self._names()
        instances = self._resolve(
            config, summary, lambda: self.lookup.ec2.describe_instances(ids=names)
        )
        if instances is None:
            return
        found = {i["InstanceId"] for i in instances}
        self._skip_missing(summary, found, names)

        terminating: List[str] = []
        for chunk in chunked([n for n in names if n in found], TERMINATE_CHUNK_SIZE):
            terminating.extend(self._terminate(config, summary, chunk))

        self._wait_for_deletion(config, summary, terminating, self._pending)

    def _terminate(
        self, config: DeleteConfig, summary: DeleteSummary, chunk: List[str]
    ) -> List[str]:
        """
        Terminate one batch and return the ids now terminating.

        AWS rejects the whole batch when one id is gone, so the batch is
        resolved again and the live ids are terminated without it.
        """
        try:
            config.call(self.client.terminate_instances, InstanceIds=chunk)
            return chunk
        except ClientError as e:
            if not is_not_found(e):
                name = ",".join(chunk)
                self._fail(config, summary, name, error_code(e), error_message(e), error=e)
                return []
            logger.debug(f"Batch {chunk} holds a missing instance, resolving again")
        finally:
            config.pause()

        instances = self._resolve(
            config, summary, lambda: self.lookup.ec2.describe_instances(ids=chunk)
        )
        if instances is None:
            return []
        live = {i["InstanceId"] for i in instances}
        self._skip_missing(summary, live, chunk)
        remaining = [name for name in chunk if name in live]
        if remaining and self._execute(
            config, summary, ",".join(remaining), self.client.terminate_instances,
            record=False, InstanceIds=remaining,
        ):
            return remaining
        return []

    def _pending(self, names: List[str]) -> List[str]:
        states = self.lookup.ec2.instance_states(names)
        return [name for name, state in states.items() if state != "terminated"]


class NetworkInterfaceDeleter(RecordDeleter):
    """
    Detaches secondary attachments before deleting the interface. The delete
    call is retried while AWS still reports the interface in use.
    """

    resource_type = ResourceType.NETWORK_INTERFACE
    description = "EC2 NetworkInterface"
    id_key = "NetworkInterfaceId"
    operation_name = "delete_network_interface"
    param_name = "NetworkInterfaceId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_network_interfaces(ids=names)

    def _clear_blocking(self, config, summary, record):
        attachment = record.get("Attachment") or {}
        attachment_id = attachment.get("AttachmentId")
        # Device index 0 is the primary interface, which cannot be detached
        if not attachment_id or attachment.get("DeviceIndex", 0) <= 0:
            return
        deleter = NetworkInterfaceAttachmentDeleter(
            self.aws_client, record["NetworkInterfaceId"], lookup=self.lookup
        )
        deleter.add_resource(attachment_id, AttachmentId=attachment_id, Force=True)
        self._delete_children(config, summary, deleter)


class VolumeDeleter(RecordDeleter):
    resource_type = ResourceType.VOLUME
    description = "EC2 Volume"
    id_key = "VolumeId"
    operation_name = "delete_volume"
    param_name = "VolumeId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_volumes(names)


# =============================================================================
# Elastic IPs
# =============================================================================


class ElasticIPDeleter(RecordDeleter):
    resource_type = ResourceType.ELASTIC_IP
    description = "EC2 EIP"
    id_key = "AllocationId"
    operation_name = "release_address"
    param_name = "AllocationId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_addresses(allocation_ids=names)


class EIPAssociationDeleter(RecordDeleter):
    resource_type = ResourceType.EIP_ASSOCIATION
    description = "EC2 EIPAssociation"
    id_key = "AssociationId"
    operation_name = "disassociate_address"
    param_name = "AssociationId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_addresses(association_ids=names)


# =============================================================================
# VPN
# =============================================================================


class VpnGatewayDeleter(RecordDeleter):
    resource_type = ResourceType.VPN_GATEWAY
    description = "EC2 VPNGateway"
    id_key = "VpnGatewayId"
    operation_name = "delete_vpn_gateway"
    param_name = "VpnGatewayId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_vpn_gateways(ids=names)

    def _clear_blocking(self, config, summary, record):
        gateway_id = record["VpnGatewayId"]
        deleter = VpnGatewayAttachmentDeleter(self.aws_client, gateway_id, lookup=self.lookup)
        for attachment in record.get("VpcAttachments", []):
            if attachment.get("State") in DETACHED_STATES:
                continue
            deleter.add_resource(
                attachment["VpcId"],
                VpnGatewayId=gateway_id,
                VpcId=attachment["VpcId"],
            )
        self._delete_children(config, summary, deleter)


class VpnConnectionDeleter(RecordDeleter):
    resource_type = ResourceType.VPN_CONNECTION
    description = "EC2 VPNConnection"
    id_key = "VpnConnectionId"
    operation_name = "delete_vpn_connection"
    param_name = "VpnConnectionId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_vpn_connections(ids=names)

    def _clear_blocking(self, config, summary, record):
        connection_id = record["VpnConnectionId"]
        deleter = VpnConnectionRouteDeleter(self.aws_client, connection_id, lookup=self.lookup)
        for route in record.get("Routes", []):
            if route.get("State") in ("deleting", "deleted"):
                continue
            deleter.add_resource(
                f"{connection_id}:{route['DestinationCidrBlock']}",
                VpnConnectionId=connection_id,
                DestinationCidrBlock=route["DestinationCidrBlock"],
            )
        self._delete_children(config, summary, deleter)


class CustomerGatewayDeleter(RecordDeleter):
    resource_type = ResourceType.CUSTOMER_GATEWAY
    description = "EC2 CustomerGateway"
    id_key = "CustomerGatewayId"
    operation_name = "delete_customer_gateway"
    param_name = "CustomerGatewayId"

    def _fetch(self, names):
        return self.lookup.ec2.describe_customer_gateways(names)
