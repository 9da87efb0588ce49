"""Errors reported while checking a link, and their stored form."""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(enum.Enum):
    """The kinds of failure a link check can end in."""

    NOT_TRIED = "NotTried"
    HTTP_ERROR = "HttpError"
    TOO_MANY_REQUESTS = "TooManyRequests"
    REQUEST_ERROR = "ReqwestError"
    TRAVIS_BUILD_UNKNOWN = "TravisBuildUnknown"
    TRAVIS_BUILD_NO_BRANCH = "TravisBuildNoBranch"


_MESSAGES = {
    ErrorKind.NOT_TRIED: "failed to try url",
    ErrorKind.TOO_MANY_REQUESTS: "too many requests",
    ErrorKind.TRAVIS_BUILD_UNKNOWN: "travis build is unknown",
    ErrorKind.TRAVIS_BUILD_NO_BRANCH: "travis build image with no branch",
}


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class CheckerError(Exception):
    """A failed link check."""

    def __init__(
        self,
        kind: ErrorKind,
        *,
        status: int | None = None,
        location: str | None = None,
        error: str | None = None,
    ) -> None:
        if kind is ErrorKind.HTTP_ERROR and status is None:
            raise ValueError("an HTTP error needs a status")
        if kind is ErrorKind.REQUEST_ERROR and error is None:
            raise ValueError("a request error needs an error message")
        self.kind = kind
        self.status = int(status) if kind is ErrorKind.HTTP_ERROR else None
        self.location = location if kind is ErrorKind.HTTP_ERROR else None
        self.error = error if kind is ErrorKind.REQUEST_ERROR else None
        super().__init__(self._message())

    def _message(self) -> str:
        if self.kind is ErrorKind.HTTP_ERROR:
            return f"http error: {self.status}"
        if self.kind is ErrorKind.REQUEST_ERROR:
            return f"request error: {self.error}"
        return _MESSAGES[self.kind]

    @property
    def debug_text(self) -> str:
        """A structural description of the error, as written in reports."""
        if self.kind is ErrorKind.HTTP_ERROR:
            location = "None" if self.location is None else f"Some({_quote(self.location)})"
            return f"HttpError {{ status: {self.status}, location: {location} }}"
        if self.kind is ErrorKind.REQUEST_ERROR:
            return f"ReqwestError {{ error: {_quote(self.error or '')} }}"
        return self.kind.value

    def to_data(self) -> Any:
        """Return the plain data stored in the results file."""
        if self.kind is ErrorKind.HTTP_ERROR:
            return {self.kind.value: {"status": self.status, "location": self.location}}
        if self.kind is ErrorKind.REQUEST_ERROR:
            return {self.kind.value: {"error": self.error}}
        return self.kind.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CheckerError):
            return NotImplemented
        return (self.kind, self.status, self.location, self.error) == (
            other.kind,
            other.status,
            other.location,
            other.error,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.status, self.location, self.error))

    def __repr__(self) -> str:
        return f"CheckerError({self.debug_text})"


def error_from_data(data: Any) -> CheckerError:
    """Rebuild a CheckerError from its stored form."""
    if isinstance(data, str):
        kind = ErrorKind(data)
        if kind in (ErrorKind.HTTP_ERROR, ErrorKind.REQUEST_ERROR):
            raise ValueError(f"{data} needs fields")
        return CheckerError(kind)
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"not a stored error: {data!r}")
    ((name, fields),) = data.items()
    kind = ErrorKind(name)
    if not isinstance(fields, dict):
        raise ValueError(f"fields of {name} must be a mapping")
    try:
        if kind is ErrorKind.HTTP_ERROR:
            return CheckerError(kind, status=int(fields["status"]), location=fields.get("location"))
        if kind is ErrorKind.REQUEST_ERROR:
            return CheckerError(kind, error=str(fields["error"]))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"bad fields for {name}: {fields!r}") from exc
    return CheckerError(kind)


def format_error(err: CheckerError, url: str) -> str:
    """Describe a failure of ``url`` in one line."""
    if err.kind is ErrorKind.HTTP_ERROR:
        if err.location is not None:
            return f"[{err.status}] {url} -> {err.location}"
        return f"[{err.status}] {url}"
    if err.kind is ErrorKind.TRAVIS_BUILD_UNKNOWN:
        return f"[Unknown travis build] {url}"
    if err.kind is ErrorKind.TRAVIS_BUILD_NO_BRANCH:
        return f"[Travis build image with no branch specified] {url}"
    return err.debug_text