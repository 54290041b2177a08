from aws_cdk import (
    CustomResource,
    Duration,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_lambda as _lambda,
    custom_resources as cr,
)
from constructs import Construct

from common import constants
from common.stack_context import StackContext


class EndpointIpLookup(Construct):
    """Deploy-time lookup of an interface endpoint's private IP addresses.

    The endpoint only exposes its network interface ids; the addresses are
    resolved by a Lambda-backed custom resource and read back per index with
    ``private_ip_address``. Index ``i`` belongs to the ``i``-th interface id
    reported by the endpoint.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        endpoint: ec2.InterfaceVpcEndpoint,
        context: StackContext,
        layers: list[_lambda.ILayerVersion],
    ) -> None:
        super().__init__(scope, construct_id)

        self.function = self._build_resolver_lambda(context, layers)
        self.function.add_to_role_policy(
            iam.PolicyStatement(
                sid="DescribeEndpointNetworkInterfaces",
                actions=["ec2:DescribeNetworkInterfaces"],
                # DescribeNetworkInterfaces does not support resource-level permissions
                resources=["*"],
            )
        )

        provider = cr.Provider(self, "Provider", on_event_handler=self.function)

        self.resource = CustomResource(
            self,
            "Resource",
            service_token=provider.service_token,
            resource_type=constants.ENDPOINT_IPS_RESOURCE_TYPE,
            properties={
                "NetworkInterfaceIds": endpoint.vpc_endpoint_network_interface_ids,
            },
        )

    def private_ip_address(self, index: int) -> str:
        return self.resource.get_att_string(
            constants.PRIVATE_IP_ATTRIBUTE.format(index=index)
        )

    @property
    def private_ip_addresses(self) -> str:
        """Comma-joined addresses in interface order."""
        return self.resource.get_att_string(constants.PRIVATE_IPS_ATTRIBUTE)

    def _build_resolver_lambda(
        self, context: StackContext, layers: list[_lambda.ILayerVersion]
    ) -> _lambda.Function:
        log_group = context.build_log_group(
            "Function", action=constants.ACTION_RESOLVER
        )
        return _lambda.Function(
            self,
            context.build_resource_id("Function", action=constants.ACTION_RESOLVER),
            function_name=context.build_resource_name(
                "Function", action=constants.ACTION_RESOLVER
            ),
            runtime=constants.PYTHON_RUNTIME,
            handler="endpoint_ips_provider.handler",
            code=_lambda.Code.from_asset(constants.LAMBDA_SRC),
            architecture=constants.DEFAULT_ARCHITECTURE,
            description="Resolves VPC endpoint network interface IPs for NLB target registration",
            timeout=Duration.seconds(constants.RESOLVER_TIMEOUT_SECONDS),
            memory_size=128,
            tracing=_lambda.Tracing.ACTIVE,
            log_group=log_group,
            layers=layers,
            environment={
                "LOG_LEVEL": "INFO",
                "RESOLVER_MAX_ATTEMPTS": str(constants.RESOLVER_MAX_ATTEMPTS),
                "RESOLVER_BASE_DELAY_SECONDS": str(
                    constants.RESOLVER_BASE_DELAY_SECONDS
                ),
                "RESOLVER_MAX_DELAY_SECONDS": str(constants.RESOLVER_MAX_DELAY_SECONDS),
            },
        )
