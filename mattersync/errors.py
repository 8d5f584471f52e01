"""Exceptions raised by the sync engine and its collaborators."""

from typing import Optional

import requests


class MatterSyncError(Exception):
    """Base class for all mattersync errors."""


class AuthError(MatterSyncError):
    """The access token was rejected or could not be refreshed."""


class RequestError(MatterSyncError):
    """A non-auth HTTP failure. Carries the raw response for diagnostics."""

    def __init__(self, message: str, response: Optional[requests.Response] = None) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> Optional[int]:
        if self.response is None:
            return None
        return self.response.status_code


class TemplateError(MatterSyncError):
    """A user template is malformed or failed while rendering."""


class FileSystemError(MatterSyncError):
    """A vault read, write, or move failed."""
