"""
ASGI config for the RankRent back office.

Served by uvicorn/daphne locally and through Mangum on AWS Lambda.
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Initialize Django at module load (container startup) rather than per request.
from django.core.asgi import get_asgi_application
from mangum import Mangum

application = get_asgi_application()

_lambda_handler = None


def lambda_handler(event, context):
    """AWS Lambda entry point for HTTP requests."""
    global _lambda_handler
    if _lambda_handler is None:
        _lambda_handler = Mangum(application, lifespan="off")
    return _lambda_handler(event, context)
