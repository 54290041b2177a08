from enum import Enum


def resource_governance_doc_url(resource: str) -> str:
    governance_doc_url = f"https://privateapigw-internal-docs/{resource}-governance"
    return governance_doc_url


class AWSService(str, Enum):
    Lambda = "lambda"
    Log_Group = "log-group"
    Api_Gateway = "api-gateway"
    Security_Group = "security-group"
    Load_Balancer = "elb"
