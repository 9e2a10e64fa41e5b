# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Logging configuration for ec2-metadatafs.

Every module logs through the single package logger defined here, so the
client layer and the FUSE layer share one level and one set of handlers.
"""

import logging
import logging.handlers
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s] - %(message)s'
SYSLOG_FORMAT = 'ec2-metadatafs: %(levelname)s %(message)s'

logger = logging.getLogger('ec2_metadatafs')

def configure_logging(verbose=False, syslog=False, syslog_address='/dev/log'):
    """
    Configure the package logger.

    The level is DEBUG when verbose is set, otherwise taken from the
    EC2_METADATAFS_LOG_LEVEL environment variable, defaulting to INFO.

    Args:
        verbose (bool): Log at DEBUG level
        syslog (bool): Also send log records to syslog
        syslog_address (str): Syslog socket path or (host, port) tuple

    Returns:
        logging.Logger: The configured logger
    """
    level_name = 'DEBUG' if verbose else os.environ.get('EC2_METADATAFS_LOG_LEVEL', 'INFO')
    level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger.setLevel(level)

    if syslog:
        handler = logging.handlers.SysLogHandler(
            address=syslog_address, facility=logging.handlers.SysLogHandler.LOG_USER)
        handler.setFormatter(logging.Formatter(SYSLOG_FORMAT))
        logger.addHandler(handler)
    return logger
