# deliverypref/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    path: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message}


class ServiceError(Exception):
    status_code = 500
    default_message = "Unexpected server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(ServiceError):
    """All violated field rules of one request, reported together."""

    status_code = 400
    default_message = "Invalid order payload"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        if not errors:
            raise ValueError("ValidationError needs at least one FieldError")
        self.errors = list(errors)
        super().__init__(message)

    @property
    def paths(self) -> List[str]:
        return [e.path for e in self.errors]

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message, "issues": [e.as_dict() for e in self.errors]}


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"
