"""AWS Lambda entry point serving the directory API behind API Gateway.

Requests are translated to ASGI calls on the FastAPI application by Mangum.
"""

import logging
import os
from typing import Any

from mangum import Mangum

from lambda_dependencies import get_fastapi_app, initialize_lambda_environment

logger = logging.getLogger(__name__)

# Build the app during cold start, except under test
if os.getenv("ENVIRONMENT") != "test":
    initialize_lambda_environment()
    mangum_handler: Any = Mangum(get_fastapi_app(), lifespan="off")
else:
    mangum_handler = None


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Handle an API Gateway request.

    Args:
        event: API Gateway proxy event
        context: The Lambda context object

    Returns:
        API Gateway proxy response
    """
    logger.info(f"Received Lambda invocation, request_id: {context.aws_request_id}")

    try:
        result: dict[str, Any] = mangum_handler(event, context)
        return result

    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "body": '{"detail": "Internal server error"}',
            "headers": {"content-type": "application/json"},
        }
