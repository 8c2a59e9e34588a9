# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Mount helpers for the bucketpath FUSE mount.

Checking and releasing a mountpoint, signal handling, and the FUSE options
used when a container is mounted.
"""

import signal
import subprocess
import sys
import time

from ..utils import logger, time_function


def is_mounted(mountpoint: str) -> bool:
    """Check ``mountpoint`` with the ``mountpoint`` utility."""
    result = subprocess.run(["mountpoint", "-q", mountpoint.rstrip('/')], check=False)
    return result.returncode == 0


def unmount(mountpoint, fuse_ops=None, lazy_fallback=True):
    """
    Release a mountpoint with ``fusermount -u`` (Linux).

    Pending writes of ``fuse_ops`` are uploaded first. When the mountpoint is
    busy the lazy form ``fusermount -uz`` is tried once, which detaches now
    and finishes when the last open file is closed.

    Args:
        mountpoint (str): Mounted directory
        fuse_ops (BucketPathFuse, optional): Operations whose write buffers are flushed first
        lazy_fallback (bool, optional): Retry with a lazy unmount. Defaults to True.

    Returns:
        bool: True if the mountpoint was released
    """
    mountpoint = mountpoint.rstrip('/')
    logger.info(f"Releasing mountpoint {mountpoint}")
    start_time = time.time()
    try:
        if fuse_ops is not None:
            fuse_ops.flush_all()

        if not is_mounted(mountpoint):
            logger.warning(f"{mountpoint} is not a mountpoint, skipping unmount")
            print(f"{mountpoint} is not mounted.")
            return False

        try:
            subprocess.run(["fusermount", "-u", mountpoint], check=True)
        except subprocess.CalledProcessError:
            if not lazy_fallback:
                raise
            logger.warning(f"{mountpoint} is busy, falling back to a lazy unmount")
            subprocess.run(["fusermount", "-uz", mountpoint], check=True)
        logger.info(f"Released {mountpoint}")
        print(f"Unmounted {mountpoint}.")
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Unmount of {mountpoint} failed: {e}")
        print(f"Failed to unmount {mountpoint}: {e}")
        return False
    finally:
        time_function("unmount", start_time)


def setup_signal_handlers(mountpoint, unmount_func, signals=(signal.SIGINT, signal.SIGTERM)):
    """
    Unmount and exit when one of ``signals`` arrives.

    Args:
        mountpoint (str): Mounted directory
        unmount_func (callable): Called with ``mountpoint``
        signals (tuple, optional): Signals to handle. Defaults to SIGINT and SIGTERM.

    Returns:
        callable: The installed handler
    """
    def handle(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, unmounting {mountpoint}")
        unmount_func(mountpoint)
        sys.exit(0)

    for signum in signals:
        signal.signal(signum, handle)
    return handle


def get_mount_options(foreground=True, allow_other=False, attr_timeout=60):
    """
    Keyword options for ``fuse.FUSE``.

    The kernel keeps attributes and directory entries for ``attr_timeout``
    seconds, the same time the filesystem keeps attribute snapshots. Negative
    lookups are not cached.

    Args:
        foreground (bool, optional): Stay attached to the terminal. Defaults to True.
        allow_other (bool, optional): Let other users access the mount; needs
            ``user_allow_other`` in /etc/fuse.conf. Defaults to False.
        attr_timeout (float, optional): Attribute and entry timeout in seconds.

    Returns:
        dict: FUSE mount options
    """
    options = dict(
        foreground=foreground,
        default_permissions=True,
        rw=True,
        big_writes=True,
        hard_remove=True,
        entry_timeout=attr_timeout,
        attr_timeout=attr_timeout,
        negative_timeout=0,
    )
    if allow_other:
        options['allow_other'] = True
    return options
