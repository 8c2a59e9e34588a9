# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Store error conversion.

This module converts botocore errors raised by the S3 client into the
store-level exceptions of :mod:`bucketpath.client.exceptions`. Retrying is
left to botocore's own retry configuration; errors that reach this layer
are final.

Functions:
    convert_client_error: Convert a botocore error to a StoreError subclass.
    wrap_client_errors: Decorator applying the conversion to a client method.
"""
from functools import wraps
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError

from ..utils import logger
from .exceptions import AuthenticationError, BucketError, ObjectError, StoreError

BUCKET_ERROR_CODES = {
    "NoSuchBucket",
    "BucketAlreadyExists",
    "BucketAlreadyOwnedByYou",
    "BucketNotEmpty",
    "InvalidBucketName",
}

AUTH_ERROR_CODES = {
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
}

NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NotFound", "404"}


def convert_client_error(e: Exception, operation: Optional[str] = None) -> StoreError:
    """
    Convert botocore errors to appropriate store errors.

    This function inspects the S3 error code and HTTP status and converts
    them to the more specific store exception types.

    Args:
        e (Exception): The botocore error to convert.
        operation (str, optional): The operation being performed. Defaults to None.

    Returns:
        StoreError: The converted error.
    """
    if isinstance(e, (NoCredentialsError, PartialCredentialsError)):
        return AuthenticationError(str(e))
    if not isinstance(e, ClientError):
        return StoreError(str(e))

    error = e.response.get("Error", {})
    error_code = str(error.get("Code", ""))
    error_msg = error.get("Message") or str(e)
    status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if status_code is None and error_code.isdigit():
        status_code = int(error_code)
    if error_code in NOT_FOUND_CODES:
        status_code = 404

    if error_code in AUTH_ERROR_CODES:
        return AuthenticationError(error_msg, status_code=status_code)

    # Handle bucket-related errors
    if error_code in BUCKET_ERROR_CODES:
        if error_code == "NoSuchBucket":
            return BucketError("Bucket does not exist", operation="ACCESS", status_code=status_code)
        if error_code == "BucketNotEmpty":
            return BucketError("Bucket is not empty", operation="DELETE", status_code=status_code)
        if error_code in ("BucketAlreadyExists", "BucketAlreadyOwnedByYou"):
            return BucketError("Bucket already exists", operation="CREATE", status_code=status_code)
        return BucketError("Invalid bucket name", operation="VALIDATE", status_code=status_code)

    # Handle object-related errors
    if status_code == 404:
        return ObjectError("Object does not exist", operation=operation, status_code=status_code)
    if status_code == 403 or error_code == "AccessDenied":
        return ObjectError("Access denied to object", operation=operation, status_code=status_code)
    if error_code == "EntityTooLarge":
        return ObjectError("Object size exceeds limits", operation=operation, status_code=status_code)
    if error_code == "InvalidRange":
        return ObjectError("Requested range not satisfiable", operation=operation, status_code=status_code)
    return ObjectError(error_msg, operation=operation, status_code=status_code)


def wrap_client_errors(operation: Optional[str] = None) -> Callable:
    """
    Decorator converting botocore errors raised by a client method.

    Args:
        operation (str, optional): Operation name recorded in the error code.

    Returns:
        Callable: A decorator that wraps the function.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except (ClientError, BotoCoreError) as e:
                converted = convert_client_error(e, operation)
                if converted.is_not_found:
                    logger.debug(f"{func.__name__}: not found ({converted.code})")
                else:
                    logger.error(f"{func.__name__} failed: {converted}")
                raise converted from e

        return wrapper
    return decorator
