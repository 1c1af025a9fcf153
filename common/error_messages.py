"""
User-facing error messages and status codes.

Every failure the relay reports goes out as {"error": message}; this module
is the single table of those messages and the HTTP status each one carries.
Vendor and Telegram failures are all 500-class, with the upstream text
appended so callers see what the service actually said.
"""
from typing import Tuple, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # Validation Errors (400)
    MISSING_PROMPT = "MISSING_PROMPT"
    MISSING_MODEL = "MISSING_MODEL"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    INVALID_UPDATE = "INVALID_UPDATE"
    MISSING_WEBHOOK_HOST = "MISSING_WEBHOOK_HOST"

    # Routing Errors
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Configuration Errors (500)
    MISSING_API_KEY = "MISSING_API_KEY"
    MISSING_TELEGRAM_TOKEN = "MISSING_TELEGRAM_TOKEN"
    MISSING_WEBAPP_URL = "MISSING_WEBAPP_URL"

    # Vendor Errors (500)
    VENDOR_API_ERROR = "VENDOR_API_ERROR"
    VENDOR_TIMEOUT = "VENDOR_TIMEOUT"
    VENDOR_CONNECTION_ERROR = "VENDOR_CONNECTION_ERROR"
    VENDOR_BAD_RESPONSE = "VENDOR_BAD_RESPONSE"

    # Telegram Errors (500)
    TELEGRAM_API_ERROR = "TELEGRAM_API_ERROR"

    # Generic Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES = {
    # Validation Errors
    ErrorCode.MISSING_PROMPT: "The prompt parameter is required.",
    ErrorCode.MISSING_MODEL: "The model parameter is required.",
    ErrorCode.INVALID_PARAMETER: "One or more parameters are invalid.",
    ErrorCode.INVALID_UPDATE: "Bad Request: Invalid update format",
    ErrorCode.MISSING_WEBHOOK_HOST: "Could not determine the host for the webhook.",

    # Routing Errors
    ErrorCode.METHOD_NOT_ALLOWED: "Method not allowed",

    # Configuration Errors
    ErrorCode.MISSING_API_KEY: "Runware API key is not configured.",
    ErrorCode.MISSING_TELEGRAM_TOKEN: "Telegram bot token is not configured.",
    ErrorCode.MISSING_WEBAPP_URL: "WebApp URL is not configured.",

    # Vendor Errors
    ErrorCode.VENDOR_API_ERROR: "Image service error:",
    ErrorCode.VENDOR_TIMEOUT: "Image service request timed out.",
    ErrorCode.VENDOR_CONNECTION_ERROR: "Could not reach the image service:",
    ErrorCode.VENDOR_BAD_RESPONSE: "Unexpected response from the image service:",

    # Telegram Errors
    ErrorCode.TELEGRAM_API_ERROR: "Telegram API error:",

    # Generic Errors
    ErrorCode.UNKNOWN_ERROR: "Internal server error",
}


ERROR_STATUS_CODES = {
    ErrorCode.MISSING_PROMPT: 400,
    ErrorCode.MISSING_MODEL: 400,
    ErrorCode.INVALID_PARAMETER: 400,
    ErrorCode.INVALID_UPDATE: 400,
    ErrorCode.MISSING_WEBHOOK_HOST: 400,

    ErrorCode.METHOD_NOT_ALLOWED: 405,

    ErrorCode.MISSING_API_KEY: 500,
    ErrorCode.MISSING_TELEGRAM_TOKEN: 500,
    ErrorCode.MISSING_WEBAPP_URL: 500,

    ErrorCode.VENDOR_API_ERROR: 500,
    ErrorCode.VENDOR_TIMEOUT: 500,
    ErrorCode.VENDOR_CONNECTION_ERROR: 500,
    ErrorCode.VENDOR_BAD_RESPONSE: 500,

    ErrorCode.TELEGRAM_API_ERROR: 500,

    ErrorCode.UNKNOWN_ERROR: 500,
}


def get_error_response(
    error_code: ErrorCode,
    custom_message: Optional[str] = None,
) -> Tuple[str, int]:
    """
    Get user-facing error message and HTTP status code.

    Args:
        error_code: The error code enum
        custom_message: Optional text appended to the standard message

    Returns:
        Tuple of (error_message, status_code)
    """
    message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR])
    status_code = ERROR_STATUS_CODES.get(error_code, 500)

    if custom_message:
        message = f"{message} {custom_message}"

    return message, status_code
