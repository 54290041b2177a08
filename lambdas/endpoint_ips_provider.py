import os
from functools import lru_cache
from typing import Any, Optional

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.data_classes import (
    CloudFormationCustomResourceEvent,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext
from botocore.config import Config

from endpoint_ip_resolver import EndpointIpResolver, ResolvedTargetSet, RetryPolicy

logger: Logger = Logger(
    service="endpoint-ip-resolver", level=os.getenv("LOG_LEVEL", "INFO").upper()
)
tracer: Tracer = Tracer(service="endpoint-ip-resolver")

ec2_endpoint = os.getenv("EC2_ENDPOINT", None)

PRIVATE_IP_ATTRIBUTE = "PrivateIpAddress{index}"
PRIVATE_IPS_ATTRIBUTE = "PrivateIpAddresses"
INTERFACE_COUNT_ATTRIBUTE = "NetworkInterfaceCount"


@lru_cache(maxsize=1)
def ec2_client() -> Any:
    return boto3.client(
        "ec2",
        endpoint_url=ec2_endpoint,
        config=Config(retries={"mode": "standard"}),
    )


def build_response_data(target_set: ResolvedTargetSet) -> dict[str, str]:
    """Flatten the resolved records into custom resource attributes."""
    data = {
        PRIVATE_IP_ATTRIBUTE.format(index=index): record.private_ip_address
        for index, record in enumerate(target_set)
    }
    data[PRIVATE_IPS_ATTRIBUTE] = ",".join(
        record.private_ip_address for record in target_set
    )
    data[INTERFACE_COUNT_ATTRIBUTE] = str(len(target_set))
    return data


@logger.inject_lambda_context
@tracer.capture_lambda_handler
@event_source(data_class=CloudFormationCustomResourceEvent)
def handler(event: CloudFormationCustomResourceEvent, context: LambdaContext) -> dict[str, Any]:
    return on_event(event)


def on_event(
    event: CloudFormationCustomResourceEvent,
    resolver: Optional[EndpointIpResolver] = None,
) -> dict[str, Any]:
    request_type = event.request_type
    physical_resource_id = (
        event.get("PhysicalResourceId")
        or f"{event.logical_resource_id}-endpoint-ips"
    )

    if request_type == "Delete":
        logger.info("Nothing to clean up", physical_resource_id=physical_resource_id)
        return {"PhysicalResourceId": physical_resource_id}

    if request_type not in ("Create", "Update"):
        raise ValueError(f"Unknown request type: {request_type}")

    properties = event.get("ResourceProperties") or {}
    interface_ids = properties.get("NetworkInterfaceIds") or []
    logger.info(
        "Resolving endpoint network interfaces",
        request_type=request_type,
        interface_ids=interface_ids,
    )

    resolver = resolver or EndpointIpResolver(
        ec2_client(), retry_policy=RetryPolicy.from_env(os.environ)
    )
    target_set = resolver.resolve(interface_ids)

    data = build_response_data(target_set)
    logger.info("Resolved endpoint private IPs", ips=data[PRIVATE_IPS_ATTRIBUTE])
    return {"PhysicalResourceId": physical_resource_id, "Data": data}
