# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Helpers around the lifetime of a mount: FUSE options, detecting and
releasing an existing mount, and tearing down on termination signals.
"""

import signal
import subprocess
import sys
import time
from ..log import logger
from .utils import time_function

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

def is_mounted(mountpoint):
    """Return True if something is mounted at mountpoint."""
    try:
        cp = subprocess.run(["mountpoint", "-q", mountpoint], check=False)
    except FileNotFoundError:
        logger.warning("mountpoint command not available, assuming not mounted")
        return False
    return cp.returncode == 0

def unmount_command(mountpoint):
    if sys.platform == "darwin":
        return ["umount", mountpoint]
    return ["fusermount", "-u", mountpoint]

def unmount(mountpoint):
    """
    Release the mount at mountpoint. Errors are logged, not raised.

    Args:
        mountpoint (str): Directory the metadata filesystem is mounted on
    """
    start_time = time.time()
    mountpoint = mountpoint.rstrip('/') or '/'
    if not is_mounted(mountpoint):
        logger.warning(f"{mountpoint} is not mounted, nothing to unmount")
    else:
        logger.info(f"Unmounting {mountpoint}")
        try:
            subprocess.run(unmount_command(mountpoint), check=True)
            logger.info(f"Unmounted {mountpoint}")
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            logger.error(f"Failed to unmount {mountpoint}: {e}")
    time_function("unmount", start_time)

def setup_signal_handlers(mountpoint, unmount_func):
    """
    Unmount and exit when the process receives SIGINT or SIGTERM.

    Returns:
        callable: The installed handler
    """
    def on_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, releasing {mountpoint}")
        unmount_func(mountpoint)
        sys.exit(0)

    for signum in HANDLED_SIGNALS:
        signal.signal(signum, on_signal)
    return on_signal

def get_mount_options(foreground=True, allow_other=False, debug=False):
    """
    Build the keyword options passed to fusepy's FUSE().

    Nodes are reported with read-only modes and default_permissions makes
    the kernel enforce them, so most write attempts never reach us.

    Args:
        foreground (bool): Stay attached to the terminal
        allow_other (bool): Let other users read the mount. Needs
            'user_allow_other' in /etc/fuse.conf.
        debug (bool): Turn on libfuse debug output

    Returns:
        dict: FUSE keyword options
    """
    options = dict(
        foreground=foreground,
        fsname='ec2-metadatafs',
        default_permissions=True,
        # metadata values can change under us, keep kernel caching short
        attr_timeout=1,
        entry_timeout=1,
    )
    if allow_other:
        options['allow_other'] = True
    if debug:
        options['debug'] = True
    return options
