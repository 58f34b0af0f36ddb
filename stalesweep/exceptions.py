"""
Stalesweep Exceptions and Error Utilities

File Purpose: Centralized exception types and simple error handling helpers
Primary Classes/Functions: StalesweepError, APIError, NotFoundError, AuthenticationError, handle_error, wrap_api_errors
Inputs and Outputs (I/O): Accepts exceptions and console; prints user-friendly messages
"""

from functools import wraps
from typing import Optional

import requests
from rich.console import Console

# Directory error code returned when an object, or a property it references, no longer exists
RESOURCE_NOT_FOUND_CODE = "Request_ResourceNotFound"


class StalesweepError(Exception):
    """Base exception for all Stalesweep-specific errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.details = details
        self.original_error = original_error
        super().__init__(message)


class AuthenticationError(StalesweepError):
    """Raised when no usable session or token is available."""

    pass


class APIError(StalesweepError):
    """Raised when directory API calls fail."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, details, original_error)
        self.status_code = status_code
        self.error_code = error_code


class NotFoundError(APIError):
    """Raised when the target object is already gone."""

    pass


class ValidationError(StalesweepError):
    """Raised when input validation fails."""

    pass


class ConfigError(StalesweepError):
    """Raised when settings cannot be loaded or are invalid."""

    pass


def handle_error(
    console: Console,
    error: Exception,
    operation: str,
    show_details: bool = False,
    reraise: bool = False,
) -> None:
    """
    Standardized error handling function.

    Args:
        console: Rich console for output
        error: The exception that occurred
        operation: Description of the operation that failed
        show_details: Whether to show detailed error information
        reraise: Whether to re-raise the exception after handling
    """
    if isinstance(error, StalesweepError):
        console.print(f"[red]{operation} failed: {error.message}[/]")
        if show_details and error.details:
            console.print(f"[dim]   Details: {error.details}[/]")
        if show_details and error.original_error:
            console.print(f"[dim]   Original error: {error.original_error}[/]")
    else:
        console.print(f"[red]{operation} failed: {str(error)}[/]")
        if show_details:
            console.print(f"[dim]   Error type: {type(error).__name__}[/]")

    if reraise:
        raise error


def _error_body(response) -> tuple:
    """Return (code, message) from a directory error payload."""
    try:
        payload = response.json()
    except ValueError:
        return None, (response.text or "").strip() or None
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return None, None
    return error.get("code"), error.get("message")


def error_from_response(response, operation: str) -> StalesweepError:
    """Translate a failed HTTP response into the typed error hierarchy."""
    status = response.status_code
    code, message = _error_body(response)
    details = message or f"HTTP {status}"

    if status == 404 or code == RESOURCE_NOT_FOUND_CODE:
        return NotFoundError(
            f"{operation}: object not found",
            details=details,
            status_code=status,
            error_code=code,
        )
    if status in (401, 403):
        return AuthenticationError(
            f"{operation}: not authorized",
            details=details,
        )
    return APIError(
        f"{operation} failed",
        details=details,
        status_code=status,
        error_code=code,
    )


def wrap_api_errors(func):
    """
    Decorator to wrap transport errors from requests in APIError exceptions.

    Typed Stalesweep errors pass through untouched.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StalesweepError:
            raise
        except requests.HTTPError as e:
            if e.response is not None:
                raise error_from_response(e.response, "API request") from e
            raise APIError("API request failed", details=str(e), original_error=e) from e
        except (requests.Timeout, requests.ConnectionError) as e:
            raise APIError(
                "Network error",
                details="Please check your connection and try again.",
                original_error=e,
            ) from e
        except requests.RequestException as e:
            raise APIError("API request failed", details=str(e), original_error=e) from e

    return wrapper
