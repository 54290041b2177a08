from stack_test_helpers import find_resources_by_type, get_single_resource_id
from governance_test_helpers import AWSService, resource_governance_doc_url

OPEN_CIDRS = ("0.0.0.0/0", "::/0")


def assert_private_api_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.Api_Gateway.value)
    resources = find_resources_by_type(template, "AWS::ApiGateway::RestApi")
    logical_id = get_single_resource_id(resources)
    props = resources[logical_id]["Properties"]
    assert props["EndpointConfiguration"]["Types"] == ["PRIVATE"], (
        "REST APIs must use the PRIVATE endpoint type according to privateapigw "
        f"security standards. see {governance_doc}"
    )
    assert "Policy" in props, (
        f"Private REST APIs must carry a resource policy. see {governance_doc}"
    )


def assert_no_open_ingress(template):
    governance_doc = resource_governance_doc_url(AWSService.Security_Group.value)
    for logical_id, resource in find_resources_by_type(
        template, "AWS::EC2::SecurityGroup"
    ).items():
        for rule in resource["Properties"].get("SecurityGroupIngress", []):
            assert rule.get("CidrIp") not in OPEN_CIDRS, (
                f"{logical_id} allows ingress from anywhere, which violates "
                f"privateapigw security standards. see {governance_doc}"
            )
            assert rule.get("CidrIpv6") not in OPEN_CIDRS, (
                f"{logical_id} allows ingress from anywhere, which violates "
                f"privateapigw security standards. see {governance_doc}"
            )


def assert_internal_load_balancer(template):
    governance_doc = resource_governance_doc_url(AWSService.Load_Balancer.value)
    for logical_id, resource in find_resources_by_type(
        template, "AWS::ElasticLoadBalancingV2::LoadBalancer"
    ).items():
        assert resource["Properties"].get("Scheme") == "internal", (
            f"{logical_id} is internet-facing, which violates privateapigw "
            f"security standards. see {governance_doc}"
        )
    for logical_id, resource in find_resources_by_type(
        template, "AWS::ElasticLoadBalancingV2::Listener"
    ).items():
        assert resource["Properties"]["Protocol"] == "TLS", (
            f"{logical_id} must terminate TLS according to privateapigw "
            f"security standards. see {governance_doc}"
        )
