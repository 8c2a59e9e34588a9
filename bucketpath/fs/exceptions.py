"""Filesystem level exceptions.

Each class also derives from the closest builtin so callers can catch the
usual ``FileNotFoundError`` / ``FileExistsError`` / ``PermissionError``.
"""

from ..client.exceptions import StoreError


class FileSystemError(Exception):
    """Base exception for filesystem errors."""
    def __init__(self, message: str, path=None, code: str = "ERR_FS"):
        self.code = code
        self.message = message
        self.path = None if path is None else str(path)
        super().__init__(f"{code}: {message}")

class NoSuchFileError(FileSystemError, FileNotFoundError):
    """The path does not exist as a file, a marker or a prefix."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"No such file or directory: {path}", path=path, code="ERR_NOT_FOUND")

class FileAlreadyExistsError(FileSystemError, FileExistsError):
    """The target path already exists."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"Target already exists: {path}", path=path, code="ERR_EXISTS")

class DirectoryNotEmptyError(FileSystemError, OSError):
    """A directory still has children."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"Directory is not empty: {path}", path=path, code="ERR_NOT_EMPTY")

class NotDirectoryError(FileSystemError, NotADirectoryError):
    """The path exists but is not a directory."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"Not a directory: {path}", path=path, code="ERR_NOT_DIRECTORY")

class UnsupportedOperationError(FileSystemError, OSError):
    """The requested option or operation is not supported."""
    def __init__(self, message: str, path=None):
        super().__init__(message, path=path, code="ERR_UNSUPPORTED")

class AtomicMoveNotSupportedError(UnsupportedOperationError):
    """An atomic move was requested."""
    def __init__(self, source=None, target=None):
        self.target = None if target is None else str(target)
        super().__init__(f"Atomic move not supported: {source} -> {target}", path=source)
        self.code = "ERR_ATOMIC_MOVE"

class AccessDeniedError(FileSystemError, PermissionError):
    """The owner's ACL grants do not cover the requested access."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"Access denied: {path}", path=path, code="ERR_ACCESS")

class StoreFaultError(FileSystemError, OSError):
    """Any store failure other than not-found."""
    def __init__(self, path=None, message: str = None):
        super().__init__(message or f"Problem attempting to operate on {path}", path=path, code="ERR_STORE")

class FileSystemAlreadyExistsError(FileSystemError):
    """A filesystem is already open for the identity."""
    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"File system s3:{identity} already exists", code="ERR_FS_EXISTS")

class FileSystemNotFoundError(FileSystemError):
    """No filesystem is open for the identity."""
    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"File system s3:{identity} not yet created, open it first", code="ERR_FS_NOT_FOUND")

class FileSystemConfigurationError(FileSystemError):
    """Invalid URI or properties."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_FS_CONFIG")


def translate_store_error(error: StoreError, path) -> FileSystemError:
    """
    Translate a store error into a filesystem error for ``path``.

    A 404 becomes :class:`NoSuchFileError`; anything else becomes a
    :class:`StoreFaultError` naming the path. The caller raises the result
    ``from`` the original error.

    Args:
        error (StoreError): Error raised by the object store client
        path: The path under operation

    Returns:
        FileSystemError: The translated error
    """
    if isinstance(error, StoreError) and error.is_not_found:
        return NoSuchFileError(path, message=error.message)
    return StoreFaultError(path)
