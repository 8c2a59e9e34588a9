class StoreError(Exception):
    """Base exception for object store client errors."""
    def __init__(self, message: str, code: str = "ERR_UNKNOWN", status_code: int = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"{code}: {message}")

    @property
    def is_not_found(self) -> bool:
        """True when the store answered with a 404."""
        return self.status_code == 404

class AuthenticationError(StoreError):
    """Authentication failed."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, code="ERR_AUTH", status_code=status_code)

class BucketError(StoreError):
    """Bucket operation failed."""
    def __init__(self, message: str, operation: str = None, status_code: int = None):
        code = "ERR_BUCKET"
        if operation:
            code = f"ERR_BUCKET_{operation.upper()}"
        super().__init__(message, code=code, status_code=status_code)

class ObjectError(StoreError):
    """Object operation failed."""
    def __init__(self, message: str, operation: str = None, status_code: int = None):
        code = "ERR_OBJECT"
        if operation:
            code = f"ERR_OBJECT_{operation.upper()}"
        super().__init__(message, code=code, status_code=status_code)

class ConfigurationError(StoreError):
    """Configuration or credential error."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_CONFIG")
