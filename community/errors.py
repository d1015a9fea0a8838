"""Error types raised by services and mapped to HTTP responses in main."""

from __future__ import annotations


class CommunityError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotAuthenticated(CommunityError):
    status_code = 401


class PermissionDenied(CommunityError):
    status_code = 403


class NotFound(CommunityError):
    status_code = 404


class InvalidState(CommunityError):
    """The target exists but is not in a state that allows the action."""

    status_code = 409


class ConfigError(CommunityError):
    status_code = 500


class InvalidInput(CommunityError):
    status_code = 422
