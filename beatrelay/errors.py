"""Error types shared by the relay and the streaming server."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class AppError(Exception):
    """An error carrying the HTTP status and message reported to a client."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)
        self.message = message

    def to_response(self) -> tuple[int, dict[str, Any]]:
        """Return the status code and the JSON body describing this error."""
        return int(self.status_code), {"message": self.message}

    def __repr__(self) -> str:
        return f"AppError(status_code={int(self.status_code)}, message={self.message!r})"


class HandlerError(Exception):
    """Base class for errors raised while handling a WebSocket session."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR


class UnexpectedMessageTypeError(HandlerError):
    """A frame of a kind the protocol does not use was received."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__(
            "UnexpectedMessageTypeError: unsupported message type received"
        )


class UnexpectedMessageError(HandlerError):
    """A text frame with content the protocol does not expect was received."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, received: str) -> None:
        super().__init__(f"UnexpectedMessageError: {received}")
        self.received = received


class ParseAudioInfoError(HandlerError):
    """The audio info line could not be parsed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"ParseAudioInfoError: Invalid audio info format: {detail}")
        self.detail = detail


class AudioInfoUndefinedError(HandlerError):
    """Audio info was needed before the server had sent it."""

    def __init__(self) -> None:
        super().__init__("AudioInfoUndefinedError: Audio info is not set")


class AnalyzerError(Exception):
    """The WAV file could not be read for analysis."""


class StreamerError(Exception):
    """The WAV file could not be streamed to the peer."""


_EXTERNAL_NAMES: tuple[tuple[type[BaseException], str], ...] = (
    (OSError, "IoError"),
)


def to_app_error(error: BaseException) -> AppError:
    """Convert any error into the :class:`AppError` reported to a client."""
    if isinstance(error, AppError):
        return error
    if isinstance(error, HandlerError):
        return AppError(error.status_code, str(error))
    if isinstance(error, (AnalyzerError, StreamerError)):
        cause = error.__cause__
        if cause is not None:
            return AppError(
                HTTPStatus.INTERNAL_SERVER_ERROR, f"{type(error).__name__}: {cause}"
            )
        return AppError(
            HTTPStatus.INTERNAL_SERVER_ERROR, f"{type(error).__name__}: {error}"
        )
    name = type(error).__name__
    for kind, label in _EXTERNAL_NAMES:
        if isinstance(error, kind):
            name = label
            break
    return AppError(HTTPStatus.INTERNAL_SERVER_ERROR, f"{name}: {error}")