# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Utility functions for bucketpath.

This module provides the shared logger and the timing/tracing helpers
used by the filesystem layer, the store client and the FUSE mount.
"""

import logging
import time
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s] - %(message)s'

logger = logging.getLogger('bucketpath')


def configure_logging(level=logging.DEBUG):
    """
    Configure root logging with the bucketpath format.

    Called by command line entry points; the library itself never
    configures logging on import.

    Args:
        level (int): Logging level for the bucketpath logger. Defaults to DEBUG.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger.setLevel(level)


def tracing_enabled() -> bool:
    """Check the BUCKETPATH_TRACE_OPS environment variable."""
    return os.environ.get('BUCKETPATH_TRACE_OPS', '').lower() in ('true', '1', 'yes')


def time_function(func_name, start_time):
    """
    Helper function for timing operations.

    Calculates and logs the elapsed time for a function call.

    Args:
        func_name (str): Name of the function being timed
        start_time (float): Start time from time.time()

    Returns:
        float: Elapsed time in seconds
    """
    elapsed = time.time() - start_time
    logger.info(f"{func_name} completed in {elapsed:.4f} seconds")
    return elapsed


def trace_op(operation, path, **details):
    """
    Trace a file operation for debugging purposes.

    This function logs detailed information about file operations
    when the BUCKETPATH_TRACE_OPS environment variable is set.

    Args:
        operation (str): The file operation being performed
        path (str): The path of the file being operated on
        **details: Additional details to log
    """
    if tracing_enabled():
        detail_str = ', '.join(f"{k}={v}" for k, v in details.items())
        logger.debug(f"TRACE: {operation} on {path} {detail_str}")
