# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from typing import List, Optional

import httpx

# Raw response bodies are cut to this many characters in messages.
BODY_PREVIEW_LIMIT = 512


def _preview(body: Optional[str]) -> str:
    if body is None:
        return ""
    if len(body) > BODY_PREVIEW_LIMIT:
        return body[:BODY_PREVIEW_LIMIT] + "..."
    return body


class VodupError(Exception):
    """Base class for every error raised by vodup."""


# ======================
# Precondition errors
# ======================
class PreconditionError(VodupError):
    """Raised before any network call; never worth retrying."""


class MalformedURLError(PreconditionError):
    def __init__(self, url: str, reason: str = "missing scheme or host") -> None:
        self.url = url
        super().__init__(f"Malformed URL {url!r}: {reason}")


class MissingCredentialError(PreconditionError):
    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing credential: {field}")


class SourceFileError(PreconditionError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot upload {path}: {reason}")


# ======================
# Network and protocol errors
# ======================
class TransportError(VodupError):
    """Connection, timeout or other transport failure during one call."""

    def __init__(self, phase: str, cause: httpx.HTTPError) -> None:
        self.phase = phase
        self.cause = cause
        super().__init__(f"[{phase}] transport error: {type(cause).__name__}: {cause}")


class ProtocolError(VodupError):
    """The server answered, but not with what the phase expects."""

    def __init__(
        self,
        phase: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.phase = phase
        self.status_code = status_code
        self.body = body
        text = f"[{phase}] {message}"
        if status_code is not None:
            text += f" (HTTP {status_code})"
        if body:
            text += f": {_preview(body)}"
        super().__init__(text)

    @classmethod
    def from_response(cls, phase: str, message: str, response: httpx.Response) -> "ProtocolError":
        return cls(phase, message, status_code=response.status_code, body=response.text)


class ApiError(ProtocolError):
    """A ResponseMetadata.Error envelope, possibly on an HTTP 200."""

    def __init__(
        self,
        phase: str,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.code = code
        self.error_message = message
        super().__init__(
            phase, f"API error {code}: {message}", status_code=status_code, body=body
        )


class ChunkUploadError(ProtocolError):
    def __init__(self, phase: str, message: str, failed_parts: List[int]) -> None:
        self.failed_parts = list(failed_parts)
        super().__init__(phase, message)
