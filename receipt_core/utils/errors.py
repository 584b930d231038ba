"""Error values and exceptions shared by rendering and printing."""

from __future__ import annotations

import errno
import socket
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ErrorCategory = Literal["structural", "data", "timeout", "transport", "device"]
Language = Literal["en", "uz"]

DEFAULT_USER_MESSAGES: dict[Language, dict[ErrorCategory, str]] = {
    "en": {
        "structural": "The receipt template could not be used",
        "data": "The receipt data is incomplete or malformed",
        "timeout": "The printer did not respond in time",
        "transport": "Could not connect to the printer",
        "device": "The printer reported an error",
    },
    "uz": {
        "structural": "Shablon bilan ishlashda xatolik",
        "data": "Ma'lumotlar formati noto'g'ri",
        "timeout": "Kutish vaqti tugadi",
        "transport": "Printega ulanishda xatolik yuz berdi",
        "device": "Printer qurilmasi xatosi",
    },
}

_RECOVERABLE_ERRNOS = {
    errno.ECONNREFUSED,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ETIMEDOUT,
    errno.ECONNRESET,
}
_RECOVERABLE_MARKERS = (
    "ECONNREFUSED",
    "ENETUNREACH",
    "ETIMEDOUT",
    "ENOTFOUND",
    "Connection refused",
    "Network is unreachable",
    "No route to host",
    "timed out",
    "Name or service not known",
)


class ReceiptError(BaseModel):
    """Categorized error value with technical and user-facing wording."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    category: ErrorCategory
    message: str
    user_message: str
    detail: dict[str, Any] = Field(default_factory=dict)
    cause: str | None = None


class CheckResult(BaseModel):
    """Tagged success/failure result of a boundary check."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    error: ReceiptError | None = None

    @classmethod
    def ok(cls) -> CheckResult:
        return cls(success=True)

    @classmethod
    def fail(cls, error: ReceiptError) -> CheckResult:
        return cls(success=False, error=error)


def make_error(
    category: ErrorCategory,
    message: str,
    user_message: str | None = None,
    *,
    language: Language = "en",
    cause: BaseException | None = None,
    detail: dict[str, Any] | None = None,
) -> ReceiptError:
    """Build an error value.

    Specific user messages are written in English; other languages get the
    category message from ``DEFAULT_USER_MESSAGES``.
    """

    fallback = DEFAULT_USER_MESSAGES.get(language, DEFAULT_USER_MESSAGES["en"])[category]
    if language != "en":
        user_message = None
    return ReceiptError(
        category=category,
        message=message,
        user_message=user_message or fallback,
        detail=detail or {},
        cause=f"{type(cause).__name__}: {cause}" if cause is not None else None,
    )


class TemplateLoadError(Exception):
    """Raised when a stored template cannot be loaded into a model."""

    def __init__(self, message: str, *, error: ReceiptError) -> None:
        super().__init__(message)
        self.error = error


class DeviceOperationError(Exception):
    """Raised by the printer sink; carries the categorized error value."""

    def __init__(self, error: ReceiptError) -> None:
        super().__init__(error.message)
        self.error = error


def is_recoverable_error(exc: BaseException | None) -> bool:
    """Return True when a connection-level failure may succeed on retry."""

    if exc is None:
        return False
    if isinstance(exc, (ConnectionRefusedError, ConnectionResetError, socket.gaierror)):
        return True
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return True
    if isinstance(exc, OSError) and exc.errno in _RECOVERABLE_ERRNOS:
        return True
    text = str(exc)
    return any(marker in text for marker in _RECOVERABLE_MARKERS)
