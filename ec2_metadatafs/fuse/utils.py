# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Utility functions for the EC2 metadata FUSE filesystem.

Small helpers for timing and tracing filesystem operations.
"""

import os
import time

from ..log import logger

def _env_flag(name):
    return os.environ.get(name, '').lower() in ('true', '1', 'yes')

def trace_enabled():
    """Whether per-operation tracing was requested through EC2_METADATAFS_TRACE_OPS."""
    return _env_flag('EC2_METADATAFS_TRACE_OPS')

def time_function(func_name, start_time):
    """Log and return the seconds elapsed since start_time (a time.time() value)."""
    elapsed = time.time() - start_time
    logger.debug(f"{func_name} completed in {elapsed:.4f} seconds")
    return elapsed

def trace_op(operation, path, **details):
    """
    Log one filesystem operation when tracing is enabled.

    Args:
        operation (str): Operation name, e.g. "getattr"
        path (str): Path the operation targets
        **details: Extra values to include, such as offsets or flags
    """
    if trace_enabled():
        detail_str = ', '.join(f"{k}={v}" for k, v in details.items())
        logger.debug(f"TRACE: {operation} on {path} {detail_str}")
