from aws_cdk import (
    CfnOutput,
    Stack,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
    aws_elasticloadbalancingv2_targets as elbv2_targets,
    aws_ssm as ssm,
)
from constructs import Construct

from common import constants
from common.stack_context import StackContext
from networking.endpoint_ip_lookup import EndpointIpLookup


class NetworkingStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        deploy_env: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(
            scope=self, env=deploy_env, domain=constants.NETWORK_DOMAIN
        )

        self.vpc = self.create_vpc()
        self.test_vpc = self.create_test_vpc()
        self.peering_connection = self.create_peering_connection()
        self.add_peering_routes()

        self.endpoint_sg = self.create_endpoint_sg()
        self.api_endpoint = self.create_api_gateway_endpoint()
        self.create_ssm_parameters()

        self.endpoint_ips = EndpointIpLookup(
            self,
            "ApiEndpointIps",
            endpoint=self.api_endpoint,
            context=self.context,
            layers=self.context.build_lambda_layers(),
        )
        self.target_group = self.create_target_group()
        self.nlb = self.create_network_load_balancer()

        CfnOutput(self, "NlbDnsName", value=self.nlb.load_balancer_dns_name)
        CfnOutput(self, "VpcId", value=self.vpc.vpc_id)
        CfnOutput(self, "TestVpcId", value=self.test_vpc.vpc_id)
        CfnOutput(self, "ApiEndpointId", value=self.api_endpoint.vpc_endpoint_id)
        CfnOutput(
            self, "ApiEndpointPrivateIps", value=self.endpoint_ips.private_ip_addresses
        )

    def create_vpc(self) -> ec2.Vpc:
        """Source VPC, isolated subnets only, hosting the API Gateway endpoint."""
        return ec2.Vpc(
            self,
            "PrivateApiGwVPC",
            vpc_name=constants.VPC_NAME,
            max_azs=constants.VPC_MAX_AZS,
            nat_gateways=0,
            ip_addresses=ec2.IpAddresses.cidr(constants.VPC_CIDR),
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name=constants.SUBNET_NAME,
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=constants.CIDR_MASK,
                ),
            ],
        )

    def create_test_vpc(self) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            "PrivateApiGwTestVPC",
            vpc_name=constants.TEST_VPC_NAME,
            max_azs=constants.TEST_VPC_MAX_AZS,
            nat_gateways=constants.TEST_VPC_NAT_GATEWAYS,
            ip_addresses=ec2.IpAddresses.cidr(constants.TEST_VPC_CIDR),
        )

    def create_peering_connection(self) -> ec2.CfnVPCPeeringConnection:
        return ec2.CfnVPCPeeringConnection(
            self,
            "PrivateApiGwPeeringConnection",
            vpc_id=self.vpc.vpc_id,
            peer_vpc_id=self.test_vpc.vpc_id,
        )

    def add_peering_routes(self) -> None:
        for subnet in self.vpc.isolated_subnets:
            ec2.CfnRoute(
                self,
                id=f"PeeringRouteToTestVpc{subnet.node.id}",
                route_table_id=subnet.route_table.route_table_id,
                destination_cidr_block=self.test_vpc.vpc_cidr_block,
                vpc_peering_connection_id=self.peering_connection.ref,
            )
        for subnet in self.test_vpc.private_subnets:
            ec2.CfnRoute(
                self,
                id=f"PeeringRouteToSourceVpc{subnet.node.id}",
                route_table_id=subnet.route_table.route_table_id,
                destination_cidr_block=self.vpc.vpc_cidr_block,
                vpc_peering_connection_id=self.peering_connection.ref,
            )

    def create_endpoint_sg(self) -> ec2.SecurityGroup:
        endpoint_sg = ec2.SecurityGroup(
            self,
            id="ApiGwEndpointSG",
            vpc=self.vpc,
            description="Security group for the API Gateway interface endpoint",
        )
        endpoint_sg.add_ingress_rule(
            peer=ec2.Peer.ipv4(self.vpc.vpc_cidr_block),
            connection=ec2.Port.tcp(constants.HTTPS_PORT),
            description="Allow inbound HTTPS (TCP/443) from the source VPC CIDR",
        )
        endpoint_sg.add_ingress_rule(
            peer=ec2.Peer.ipv4(self.test_vpc.vpc_cidr_block),
            connection=ec2.Port.tcp(constants.HTTPS_PORT),
            description="Allow inbound HTTPS (TCP/443) from the peered test VPC CIDR",
        )
        return endpoint_sg

    def create_api_gateway_endpoint(self) -> ec2.InterfaceVpcEndpoint:
        """Interface endpoint for execute-api, one ENI per isolated subnet."""
        return ec2.InterfaceVpcEndpoint(
            self,
            "ApiGwEndpoint",
            vpc=self.vpc,
            service=ec2.InterfaceVpcEndpointAwsService.APIGATEWAY,
            private_dns_enabled=True,
            open=False,
            security_groups=[self.endpoint_sg],
            subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
        )

    def create_ssm_parameters(self) -> None:
        """Persist vpc and endpoint ids in SSM"""
        ssm.StringParameter(
            self,
            "PrivateApiGwVpcIdParameter",
            description="Contains the private API Gateway source VPC ID",
            parameter_name=constants.VPC_ID_PARAMETER_NAME,
            string_value=self.vpc.vpc_id,
        )
        ssm.StringParameter(
            self,
            "PrivateApiGwEndpointIdParameter",
            description="Contains the API Gateway interface endpoint ID",
            parameter_name=constants.ENDPOINT_ID_PARAMETER_NAME,
            string_value=self.api_endpoint.vpc_endpoint_id,
        )

    def create_target_group(self) -> elbv2.NetworkTargetGroup:
        target_group = elbv2.NetworkTargetGroup(
            self,
            "ApiGwEndpointTargetGroup",
            vpc=self.vpc,
            port=constants.HTTPS_PORT,
            protocol=elbv2.Protocol.TLS,
            target_type=elbv2.TargetType.IP,
        )
        # The endpoint places one network interface in each availability zone.
        for index in range(len(self.vpc.availability_zones)):
            target_group.add_target(
                elbv2_targets.IpTarget(self.endpoint_ips.private_ip_address(index))
            )
        return target_group

    def create_network_load_balancer(self) -> elbv2.NetworkLoadBalancer:
        nlb = elbv2.NetworkLoadBalancer(
            self,
            "PrivateApiGwNlb",
            vpc=self.vpc,
            internet_facing=False,
            cross_zone_enabled=True,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
        )
        nlb.add_listener(
            "TlsListener",
            port=constants.HTTPS_PORT,
            protocol=elbv2.Protocol.TLS,
            certificates=[
                elbv2.ListenerCertificate.from_arn(self.context.certificate_arn)
            ],
            default_target_groups=[self.target_group],
        )
        return nlb
