"""
Exception classes for DANA Python SDK
"""

from typing import Optional, Dict, Any


class DanaSDKError(Exception):
    """Base exception for all DANA SDK errors"""

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ValidationError(DanaSDKError):
    """Exception raised for validation failures"""
    pass


class KeyFormatError(DanaSDKError):
    """Exception raised for malformed key material"""
    pass


class SigningError(DanaSDKError):
    """Exception raised when a signature cannot be produced"""
    pass


class StorageError(DanaSDKError):
    """Exception raised for key storage related errors"""
    pass


class AuthenticationError(DanaSDKError):
    """
    Exception raised when the partner rejects credentials or a token request.

    Carries the partner's responseCode/responseMessage when they were present.
    """

    def __init__(self, message: str, error_code: str = "AUTHENTICATION_FAILED",
                 response_code: Optional[str] = None, response_message: Optional[str] = None,
                 http_status: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.response_code = response_code
        self.response_message = response_message
        self.http_status = http_status


class MalformedResponseError(AuthenticationError):
    """Exception raised when a partner response lacks required fields or is not JSON"""

    def __init__(self, message: str, http_status: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MALFORMED_RESPONSE", http_status=http_status, details=details)


class TransportError(DanaSDKError):
    """Exception raised for network failures talking to the partner"""

    def __init__(self, message: str, error_code: str = "TRANSPORT_ERROR",
                 http_status: int = 0, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.http_status = http_status


class TransportTimeoutError(TransportError):
    """Exception raised when a partner call exceeds its timeout"""

    def __init__(self, message: str, timeout: float, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TRANSPORT_TIMEOUT", details=details)
        self.timeout = timeout


class PartnerAPIError(DanaSDKError):
    """Exception raised when the partner reports an error for a signed call"""

    def __init__(self, message: str, response_code: Optional[str] = None,
                 response_message: Optional[str] = None, http_status: int = 0,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PARTNER_ERROR", details)
        self.response_code = response_code
        self.response_message = response_message
        self.http_status = http_status
