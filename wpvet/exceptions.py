"""Custom exceptions for WpVet.

Provides structured error handling with categorized exceptions
and standardized error response format.

Only structurally invalid top-level input raises. Connectivity and
per-component format problems are absorbed by the detection path and
surface as "not detected" or as a result-level error string.
"""

from typing import Optional, Dict, Any


class WpVetException(Exception):
    """Base exception for all WpVet errors.

    Provides structured error response format with:
    - error_code: Machine-readable error identifier
    - message: Human-readable error description
    - details: Optional additional context
    """

    error_code: str = "WPVET_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Return structured error response dict."""
        response = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


# ============ Validation Errors (4xx) ============


class ValidationError(WpVetException):
    """Input validation failed."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class InvalidInventoryError(ValidationError):
    """Inventory JSON is structurally invalid at the top level."""

    error_code = "INVALID_INVENTORY"

    def __init__(self, reason: str, line: Optional[int] = None):
        details: Dict[str, Any] = {"reason": reason}
        if line is not None:
            details["line"] = line
        super().__init__(f"Invalid inventory input: {reason}", details=details)


class InvalidSshUrlError(ValidationError):
    """Remote-shell URL could not be parsed."""

    error_code = "INVALID_SSH_URL"

    def __init__(self, url: str):
        super().__init__(f"Invalid SSH URL: {url}", details={"url": url})


# ============ Remote Command Errors ============


class RemoteCommandError(WpVetException):
    """A command executed over the remote shell failed."""

    error_code = "REMOTE_COMMAND_FAILED"
    status_code = 502

    def __init__(self, command: str, reason: str, exit_code: Optional[int] = None):
        details: Dict[str, Any] = {"command": command, "reason": reason}
        if exit_code is not None:
            details["exit_code"] = exit_code
            message = f"SSH command failed (exit {exit_code}): {reason}"
        else:
            message = f"SSH error: {reason}"
        super().__init__(message, details=details)


# ============ Configuration Errors ============


class ConfigurationError(WpVetException):
    """Configuration issue."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, message: str):
        super().__init__(f"Configuration error for {setting}: {message}", details={"setting": setting})


# ============ Utility Functions ============


def error_response(exception: WpVetException) -> tuple:
    """Create Flask JSON response from exception.

    Returns:
        Tuple of (response_dict, status_code) ready for jsonify
    """
    return exception.to_dict(), exception.status_code
