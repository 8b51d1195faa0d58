"""Errors raised by the GridFS facade itself.

Failures reported by the driver or the filesystem while a transfer is running,
and any other driver error (for instance ``gridfs.errors.NoFile`` from a
delete), are not wrapped: they reach the caller unchanged.
"""

from bson.errors import InvalidId


class GridFSError(Exception):
    """Base class for errors raised by this package."""


class NotFoundError(GridFSError):
    """No metadata record matched the query."""


class InvalidIdentifierError(GridFSError, InvalidId):
    """A string could not be parsed into an ObjectId."""


class SourceFileNotFoundError(GridFSError, FileNotFoundError):
    """The local file given to an upload does not exist."""


class PathUnavailableError(GridFSError):
    """The destination directory of a download cannot be written to."""
