"""Instance error taxonomy and the single error slot shown to users."""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class InstanceError(Exception):
    """Base class for errors raised while connecting to an instance.

    Every error carries a short user-facing ``title`` and a
    ``recovery_suggestion`` telling the user what to do next.
    """

    title: str = "Something Went Wrong"
    recovery_suggestion: str = "Try again."

    def __str__(self) -> str:
        return f"{self.title}: {self.recovery_suggestion}"


class UrlIsLocalError(InstanceError):
    """The URL points at a loopback or local-only host."""

    title = "Invalid URL"
    recovery_suggestion = (
        'URLs must be non-local, "localhost" and "127.0.0.1" will not work.'
    )


class UrlNotValidError(InstanceError):
    """The URL is malformed or not prefixed with http:// or https://."""

    title = "Invalid URL"
    recovery_suggestion = "Enter a valid URL."


class LabelEmptyError(InstanceError):
    """The instance label is blank."""

    title = "Invalid Label"
    recovery_suggestion = "Enter an instance label."


class BadAppNameError(InstanceError):
    """The probed instance reported a different application."""

    title = "Wrong Instance Type"

    def __init__(self, app_name: str) -> None:
        super().__init__(app_name)
        self.app_name = app_name

    @property
    def recovery_suggestion(self) -> str:  # type: ignore[override]
        return f"URL returned is a {self.app_name} instance."


class ApiError(InstanceError):
    """A transport, authentication or server failure.

    The original exception is kept in ``details``; the title and suggestion
    are derived from it.
    """

    def __init__(self, details: Exception) -> None:
        super().__init__(str(details))
        self.details = details

    @property
    def status_code(self) -> int | None:
        """HTTP status code of the failed response, if there was one."""
        if isinstance(self.details, httpx.HTTPStatusError):
            return self.details.response.status_code
        return None

    @property
    def title(self) -> str:  # type: ignore[override]
        details = self.details
        if isinstance(details, httpx.TimeoutException):
            return "Request Timed Out"
        if isinstance(details, httpx.HTTPStatusError):
            code = details.response.status_code
            if code == 401:
                return "Unauthorized"
            if code == 403:
                return "Forbidden"
            if code == 404:
                return "Not Found"
            if code >= 500:
                return "Server Error"
            return "Request Failed"
        if isinstance(details, httpx.TransportError):
            return "Connection Failed"
        if isinstance(details, UnicodeEncodeError):
            return "Invalid Header"
        if isinstance(details, (ValidationError, json.JSONDecodeError)):
            return "Invalid Response"
        return "Something Went Wrong"

    @property
    def recovery_suggestion(self) -> str:  # type: ignore[override]
        details = self.details
        if isinstance(details, httpx.TimeoutException):
            return "The instance did not respond in time. Try a longer timeout."
        if isinstance(details, httpx.HTTPStatusError):
            code = details.response.status_code
            if code == 401:
                return "Double check the API key."
            if code == 403:
                return "The instance refused the request. Check the custom headers."
            if code == 404:
                return "Double check the URL, including any sub-path."
            if code >= 500:
                return f"The instance returned an error ({code}). Check its logs."
            return f"The instance rejected the request ({code})."
        if isinstance(details, httpx.TransportError):
            return "Make sure the URL is correct and the instance is reachable."
        if isinstance(details, UnicodeEncodeError):
            return "Header names, values and the API key must be plain ASCII."
        if isinstance(details, (ValidationError, json.JSONDecodeError)):
            return "The URL did not return a valid Radarr or Sonarr response."
        return str(details) or "Try again."


class ErrorSlot:
    """Holds at most one error for presentation.

    A new error replaces the previous one; dismissing clears it.
    """

    def __init__(self) -> None:
        self._error: InstanceError | None = None

    @property
    def current(self) -> InstanceError | None:
        """The error currently shown, if any."""
        return self._error

    @property
    def title(self) -> str | None:
        return self._error.title if self._error else None

    @property
    def message(self) -> str | None:
        return self._error.recovery_suggestion if self._error else None

    def set(self, error: InstanceError) -> None:
        """Show an error, replacing any previous one."""
        if self._error is not None:
            logger.debug("Replacing error %r with %r", self._error.title, error.title)
        self._error = error

    def dismiss(self) -> None:
        """Clear the current error."""
        self._error = None

    def __bool__(self) -> bool:
        return self._error is not None
