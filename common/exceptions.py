"""Relay exceptions, each bound to an ErrorCode."""
from typing import Any, Optional

from common.error_messages import ErrorCode, get_error_response


class RelayError(Exception):
    """Base error rendered by the app as {"error": message[, "details": ...]}."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, detail: Optional[str] = None, details: Any = None, code: Optional[ErrorCode] = None):
        if code is not None:
            self.code = code
        self.detail = detail
        self.details = details
        message, status_code = get_error_response(self.code, detail)
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationError(RelayError):
    code = ErrorCode.MISSING_API_KEY


class VendorAPIError(RelayError):
    code = ErrorCode.VENDOR_API_ERROR


class VendorTimeoutError(RelayError):
    code = ErrorCode.VENDOR_TIMEOUT


class VendorConnectionError(RelayError):
    code = ErrorCode.VENDOR_CONNECTION_ERROR


class VendorResponseError(RelayError):
    code = ErrorCode.VENDOR_BAD_RESPONSE


class TelegramAPIError(RelayError):
    code = ErrorCode.TELEGRAM_API_ERROR
