import pytest
from aws_cdk.assertions import Template, Match
from stack_test_helpers import (
    LambdaTestCase,
    TEST_CERT_ARN,
    TEST_DOMAIN,
    api_template,
    build_stacks,
    expected_lambda_props,
    stacks,
)
from governance_checks import assert_private_api_compliance

# ----------------------------- Resource count smoke test ------------------------

RESOURCES = [
    ("AWS::ApiGateway::RestApi", 1),
    ("AWS::ApiGateway::DomainName", 1),
    ("AWS::ApiGateway::BasePathMapping", 1),
    ("AWS::ApiGateway::Stage", 1),
    ("AWS::Lambda::Function", 1),
    ("AWS::Lambda::LayerVersion", 1),
    ("AWS::Logs::LogGroup", 1),
    ("AWS::Route53::HostedZone", 1),
    ("AWS::Route53::RecordSet", 1),
]


@pytest.mark.parametrize("resource_type,expected", RESOURCES)
def test_resource_count(api_template: Template, resource_type: str, expected: int):
    api_template.resource_count_is(resource_type, expected)


# -------------------------- REST API tests ------------------------


def test_rest_api_is_private_and_bound_to_endpoint(api_template: Template):
    api_template.has_resource_properties(
        "AWS::ApiGateway::RestApi",
        {
            "Name": Match.string_like_regexp(r".*privateapigw-api-ingress-api-dev.*"),
            "EndpointConfiguration": {
                "Types": ["PRIVATE"],
                "VpcEndpointIds": [Match.any_value()],
            },
        },
    )
    assert_private_api_compliance(api_template)


def test_resource_policy_restricts_source_ips_to_both_vpcs(api_template: Template):
    api_template.has_resource_properties(
        "AWS::ApiGateway::RestApi",
        {
            "Policy": {
                "Statement": [
                    {
                        "Action": "execute-api:Invoke",
                        "Effect": "Allow",
                        "Principal": {"AWS": "*"},
                        "Resource": "execute-api:/*",
                        "Condition": {
                            "IpAddress": {
                                "aws:VpcSourceIp": [
                                    Match.any_value(),
                                    Match.any_value(),
                                ]
                            }
                        },
                    }
                ]
            }
        },
    )


def test_custom_domain_uses_tls_1_2_and_imported_certificate(
    api_template: Template,
):
    api_template.has_resource_properties(
        "AWS::ApiGateway::DomainName",
        {
            "DomainName": TEST_DOMAIN,
            "RegionalCertificateArn": TEST_CERT_ARN,
            "SecurityPolicy": "TLS_1_2",
            "EndpointConfiguration": {"Types": ["REGIONAL"]},
        },
    )


def test_stage_name(api_template: Template):
    api_template.has_resource_properties(
        "AWS::ApiGateway::Stage", {"StageName": "prod"}
    )


def test_proxy_method_integrates_backend_lambda(api_template: Template):
    api_template.has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "HttpMethod": "ANY",
            "Integration": {
                "Type": "AWS_PROXY",
                "IntegrationHttpMethod": "POST",
            },
        },
    )


# -------------------------- Backend Lambda tests ------------------------

BACKEND_LAMBDA = LambdaTestCase(
    id="hello_world_backend_function",
    handler="hello_world.handler",
    function_name=r".*privateapigw-api-ingress-backend-function-dev.*",
    memory_size=128,
    timeout=10,
    extra_env={},
)


def test_backend_lambda_configuration(api_template: Template):
    api_template.has_resource_properties(
        "AWS::Lambda::Function",
        Match.object_like(expected_lambda_props(BACKEND_LAMBDA)),
    )


def test_backend_log_group(api_template: Template):
    api_template.has_resource_properties(
        "AWS::Logs::LogGroup",
        {
            "LogGroupName": Match.string_like_regexp(
                r".*aws/lambda/privateapigw-api-ingress-backend-function.*"
            ),
            "RetentionInDays": 365,
        },
    )


# -------------------------- Route53 tests ------------------------


def test_private_hosted_zone_attached_to_test_vpc(api_template: Template):
    api_template.has_resource_properties(
        "AWS::Route53::HostedZone",
        {
            "Name": f"{TEST_DOMAIN}.",
            "VPCs": [{"VPCId": Match.any_value(), "VPCRegion": Match.any_value()}],
        },
    )


def test_alias_record_points_at_load_balancer(api_template: Template):
    api_template.has_resource_properties(
        "AWS::Route53::RecordSet",
        {
            "Name": f"{TEST_DOMAIN}.",
            "Type": "A",
            "AliasTarget": {
                "DNSName": Match.any_value(),
                "HostedZoneId": Match.any_value(),
            },
        },
    )


@pytest.mark.parametrize("output_id", ["ApiUrl", "ApiDomainName"])
def test_outputs(api_template: Template, output_id: str):
    api_template.has_output(output_id, {})


def test_missing_domain_context_fails_synth():
    with pytest.raises(ValueError, match="myDomain"):
        build_stacks(context={"myCertArn": TEST_CERT_ARN})
