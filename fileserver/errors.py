from __future__ import annotations


class FileServerError(Exception):
    """Base class for failures raised while answering a request."""


class InvalidPath(FileServerError):
    """The request path could not be decoded or would leave the served root.

    Always answered exactly like a missing entry.
    """


class FilesystemError(FileServerError):
    """A stat, readdir or open call failed before any response bytes were sent."""

    def __init__(self, uri: str, cause: OSError):
        self.uri = uri
        self.cause = cause
        reason = cause.strerror or type(cause).__name__
        super().__init__(f'{reason}: {uri}')


class MidStreamFailure(FileServerError):
    """Reading a file failed after the 200 status line was already sent."""
