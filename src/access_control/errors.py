"""Service error taxonomy mapped to HTTP status codes by the API layer."""

from __future__ import annotations

from typing import Any

KeyPath = tuple[str | int, ...]
ErrorMap = dict[KeyPath, list[str]]


def format_key_path(key_path: KeyPath) -> str:
    """Render a key path as a dotted field path, e.g. ``catalog_item_identity.entry_titles[0]``."""
    parts: list[str] = []
    for key in key_path:
        if isinstance(key, int):
            parts.append(f"[{key}]")
        elif parts:
            parts.append(f".{key}")
        else:
            parts.append(str(key))
    return "".join(parts)


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))

    def to_dict(self) -> dict[str, Any]:
        return {"errors": list(self.messages)}


class BadRequestError(ServiceError):
    status_code = 400


class ValidationError(ServiceError):
    """Validation rejection: a mapping of field path to human-readable messages.

    Always reported to the caller, never retried.
    """

    status_code = 400

    def __init__(self, errors: ErrorMap):
        self.errors: ErrorMap = {tuple(path): list(msgs) for path, msgs in errors.items()}
        super().__init__([msg for msgs in self.errors.values() for msg in msgs])

    def to_dict(self) -> dict[str, Any]:
        return {
            "errors": [
                {"path": list(path), "errors": msgs}
                for path, msgs in self.errors.items()
            ]
        }


class TokenError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    """The caller holds no ACL grant for the requested operation."""

    status_code = 401


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class DependencyError(ServiceError):
    """A collaborator (concept store, token service) failed or was unreachable."""

    status_code = 500

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"Call to {service} failed: {reason}")
