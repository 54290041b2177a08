import json
import os
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

logger = Logger(
    service="private-api-backend", level=os.getenv("LOG_LEVEL", "INFO").upper()
)
tracer = Tracer(service="private-api-backend")


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    return hello(event)


def hello(event: dict[str, Any]) -> dict[str, Any]:
    logger.info(
        "Handling private API request",
        method=event.get("httpMethod"),
        path=event.get("path"),
    )
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"message": "hello world"}),
    }
