"""
AWS Lambda handler for the Studio Instructor Payment API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging
import os

from payments_engine.errors import InstructorNotFoundError, NoClassesError, PaymentEngineError
from payments_engine.processor import calculate_payment_from_dict, calculate_period_from_dict

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def _response(status_code, body):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(body)}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /calculate_payment
    - POST /calculate_period
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif path == "/calculate_payment" and http_method == "POST":
        return handle_calculation(event, calculate_payment_from_dict)
    elif path == "/calculate_period" and http_method == "POST":
        return handle_calculation(event, calculate_period_from_dict)
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Studio Instructor Payment API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "calculate_payment": "/calculate_payment [POST]",
                "calculate_period": "/calculate_period [POST]",
                "health": "/health [GET]",
            },
        },
    )


def _parse_body(event):
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handle_calculation(event, calculate):
    """Run a payment calculation and map engine errors to HTTP statuses."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        logger.info(f"Calculating {event.get('path') or event.get('rawPath')}: period {input_data.get('period_id')}")

        result = calculate(input_data)

        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except InstructorNotFoundError as e:
        logger.warning(str(e))
        return _response(404, {"error": str(e), "status": "not_found"})

    except NoClassesError as e:
        logger.info(str(e))
        return _response(422, {"error": str(e), "status": "skipped", "logs": list(e.logs)})

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (missing fields, malformed formulas, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except PaymentEngineError as e:
        logger.error(f"Calculation error: {str(e)}")
        return _response(422, {"error": str(e), "status": "calculation_failed", "logs": list(e.logs)})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})
