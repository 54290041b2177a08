from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    aws_apigateway as apigw,
    aws_certificatemanager as acm,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext


class PrivateApiStack(Stack):
    """Private REST API reachable only through the interface endpoint.

    Clients in the peered test VPC resolve the custom domain through a private
    hosted zone to the internal NLB, which forwards TLS to the endpoint ENIs.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        test_vpc: ec2.IVpc,
        api_endpoint: ec2.IInterfaceVpcEndpoint,
        load_balancer: elbv2.INetworkLoadBalancer,
        deploy_env: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(
            scope=self, env=deploy_env, domain=constants.API_DOMAIN
        )
        self.domain_name = self.context.domain_name
        self.layers = self.context.build_lambda_layers()

        self.backend_log_group = self.context.build_log_group(
            "Function", action=constants.ACTION_BACKEND
        )
        self.backend_lambda = self._build_backend_lambda(self.backend_log_group)

        self.resource_policy = self._build_resource_policy(vpc, test_vpc)
        self.api = self._build_private_rest_api(api_endpoint)

        self.hosted_zone = self._build_private_hosted_zone(test_vpc)
        self._build_alias_record(self.hosted_zone, load_balancer)

        CfnOutput(self, "ApiUrl", value=self.api.url)
        CfnOutput(self, "ApiDomainName", value=f"https://{self.domain_name}/")

    # Resource creation

    def _build_backend_lambda(self, log_group: logs.ILogGroup) -> _lambda.Function:
        return _lambda.Function(
            self,
            self.context.build_resource_id("Function", action=constants.ACTION_BACKEND),
            function_name=self.context.build_resource_name(
                "Function", action=constants.ACTION_BACKEND
            ),
            runtime=constants.PYTHON_RUNTIME,
            handler="hello_world.handler",
            code=_lambda.Code.from_asset(constants.LAMBDA_SRC),
            architecture=constants.DEFAULT_ARCHITECTURE,
            description="Hello world backend for the private REST API",
            timeout=Duration.seconds(10),
            memory_size=128,
            tracing=_lambda.Tracing.ACTIVE,
            log_group=log_group,
            layers=self.layers,
            environment={"LOG_LEVEL": "INFO"},
        )

    @staticmethod
    def _build_resource_policy(
        vpc: ec2.IVpc, test_vpc: ec2.IVpc
    ) -> iam.PolicyDocument:
        """Allow invocation only from source IPs inside either VPC."""
        return iam.PolicyDocument(
            statements=[
                iam.PolicyStatement(
                    actions=["execute-api:Invoke"],
                    effect=iam.Effect.ALLOW,
                    resources=["execute-api:/*"],
                    principals=[iam.AnyPrincipal()],
                    conditions={
                        "IpAddress": {
                            "aws:VpcSourceIp": [
                                vpc.vpc_cidr_block,
                                test_vpc.vpc_cidr_block,
                            ]
                        }
                    },
                )
            ]
        )

    def _build_private_rest_api(
        self, api_endpoint: ec2.IInterfaceVpcEndpoint
    ) -> apigw.LambdaRestApi:
        certificate = acm.Certificate.from_certificate_arn(
            self, "ApiCertificate", self.context.certificate_arn
        )
        return apigw.LambdaRestApi(
            self,
            self.context.build_resource_id("API"),
            rest_api_name=self.context.build_resource_name("API"),
            handler=self.backend_lambda,
            endpoint_configuration=apigw.EndpointConfiguration(
                types=[apigw.EndpointType.PRIVATE],
                vpc_endpoints=[api_endpoint],
            ),
            policy=self.resource_policy,
            domain_name=apigw.DomainNameOptions(
                domain_name=self.domain_name,
                certificate=certificate,
                security_policy=apigw.SecurityPolicy.TLS_1_2,
            ),
            deploy_options=apigw.StageOptions(stage_name=constants.API_STAGE_NAME),
        )

    def _build_private_hosted_zone(self, test_vpc: ec2.IVpc) -> route53.PrivateHostedZone:
        return route53.PrivateHostedZone(
            self,
            "PrivateApiHostedZone",
            vpc=test_vpc,
            zone_name=self.domain_name,
        )

    def _build_alias_record(
        self,
        zone: route53.IHostedZone,
        load_balancer: elbv2.INetworkLoadBalancer,
    ) -> route53.ARecord:
        return route53.ARecord(
            self,
            "PrivateApiAliasRecord",
            zone=zone,
            record_name=self.domain_name,
            target=route53.RecordTarget.from_alias(
                route53_targets.LoadBalancerTarget(load_balancer)
            ),
        )
