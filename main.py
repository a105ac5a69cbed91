"""
Health check endpoint for the Kanban API.

This module provides a simple health check endpoint that can be used
for monitoring and load balancer health checks.
"""

from utils.decorators import lambda_handler
from utils.responses import success_response

SERVICE_NAME = "kanban-api"
VERSION = "1.0.0"


@lambda_handler(log_response=False)
def healthz(event, context):
    """
    Health check endpoint for the Kanban API.

    Does not require authentication and never touches DynamoDB or Cognito.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        HTTP response indicating service health
    """
    return success_response(
        data={
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION,
        }
    )
