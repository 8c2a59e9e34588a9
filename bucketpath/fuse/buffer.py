# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Write buffering for the FUSE mount.

Objects cannot be modified in place, so writes to an open file are collected
in a local buffer and uploaded as a whole object on flush or release.

Classes:
    BufferEntry: Content of one open file and whether it needs uploading.
    WriteBuffer: Thread-safe map of FUSE path to BufferEntry.
"""

import tempfile
import time
from threading import RLock

from ..utils import logger

# Spool to disk once a buffer grows past this size
DEFAULT_SPOOL_MAX_SIZE = 64 * 1024 * 1024  # 64MB

LOCK_TIMEOUT = 5.0
SLOW_LOCK_WARNING = 0.1


class BufferEntry:
    """
    Content of one open file, held in a SpooledTemporaryFile.

    Attributes:
        spooled_file (tempfile.SpooledTemporaryFile): The file content
        dirty (bool): True once the content differs from the stored object
    """

    def __init__(self, data: bytes = b"", dirty: bool = False, spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE):
        self.spooled_file = tempfile.SpooledTemporaryFile(max_size=spool_max_size, mode='w+b')
        self.dirty = dirty
        if data:
            self.spooled_file.write(data)

    @property
    def size(self) -> int:
        self.spooled_file.seek(0, 2)
        return self.spooled_file.tell()

    def write_at(self, data: bytes, offset: int) -> int:
        """Write at ``offset``; a gap past the end reads back as zeros."""
        self.spooled_file.seek(offset)
        written = self.spooled_file.write(data)
        self.dirty = True
        return written

    def read_at(self, offset: int, size: int = None) -> bytes:
        self.spooled_file.seek(offset)
        return self.spooled_file.read() if size is None else self.spooled_file.read(size)

    def resize(self, length: int) -> None:
        current = self.size
        if length > current:
            self.spooled_file.write(b"\0" * (length - current))
        else:
            self.spooled_file.truncate(length)
        self.dirty = True

    def close(self) -> None:
        self.spooled_file.close()


class WriteBuffer:
    """
    Pending content of open files, keyed by FUSE path.

    Attributes:
        buffers (dict): Key -> BufferEntry
        lock (threading.RLock): Guards ``buffers`` and every entry
    """

    def __init__(self, spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE):
        self.buffers = {}
        self.lock = RLock()
        self.spool_max_size = spool_max_size

    def _acquire(self, operation):
        """Take the lock, warning when it was slow and failing after LOCK_TIMEOUT."""
        start_time = time.time()
        if not self.lock.acquire(timeout=LOCK_TIMEOUT):
            logger.error(f"WriteBuffer: could not lock for {operation} within {LOCK_TIMEOUT}s")
            raise IOError(f"WriteBuffer lock timeout during {operation}")
        waited = time.time() - start_time
        if waited > SLOW_LOCK_WARNING:
            logger.warning(f"WriteBuffer: waited {waited:.4f} seconds to lock for {operation}")

    def initialize_buffer(self, key: str, data: bytes = b"", dirty: bool = False) -> None:
        """
        Create the buffer for ``key`` holding ``data``.

        An existing buffer is left untouched. ``dirty`` marks content that
        must be uploaded even without further writes.
        """
        with self.lock:
            if key in self.buffers:
                logger.warning(f"Buffer for {key} already exists, keeping it")
                return
            self.buffers[key] = BufferEntry(data, dirty=dirty, spool_max_size=self.spool_max_size)
        logger.debug(f"Opened buffer for {key} with {len(data)} bytes")

    def write(self, key: str, data: bytes, offset: int) -> int:
        """Write ``data`` at ``offset``, creating the buffer if needed."""
        self._acquire(f"write({key})")
        try:
            entry = self.buffers.get(key)
            if entry is None:
                logger.warning(f"Write to {key} without an open buffer, creating one")
                entry = self.buffers[key] = BufferEntry(spool_max_size=self.spool_max_size)
            written = entry.write_at(data, offset)
            if written != len(data):
                logger.error(f"Short write to {key}: {written} of {len(data)} bytes")
            return written
        finally:
            self.lock.release()

    def read(self, key: str, offset: int = 0, size: int = None) -> bytes:
        """
        Read from the buffer for ``key``.

        Returns the whole buffer when ``size`` is None, or None when there is
        no buffer for ``key``.
        """
        with self.lock:
            entry = self.buffers.get(key)
            if entry is None:
                return None
            return entry.read_at(0 if size is None else offset, size)

    def truncate(self, key: str, length: int) -> None:
        """Cut or zero-extend the buffer for ``key`` to ``length`` bytes."""
        with self.lock:
            entry = self.buffers.get(key)
            if entry is not None:
                entry.resize(length)
                logger.debug(f"Resized buffer for {key} to {length} bytes")

    def get_size(self, key: str) -> int:
        """Size of the buffer for ``key``; 0 when there is none."""
        with self.lock:
            entry = self.buffers.get(key)
            return 0 if entry is None else entry.size

    def is_dirty(self, key: str) -> bool:
        with self.lock:
            entry = self.buffers.get(key)
            return entry is not None and entry.dirty

    def set_dirty(self, key: str, dirty: bool) -> None:
        """Record whether the buffer for ``key`` differs from the stored object."""
        with self.lock:
            entry = self.buffers.get(key)
            if entry is not None:
                entry.dirty = dirty

    def remove(self, key: str) -> None:
        """Drop and close the buffer for ``key``."""
        with self.lock:
            entry = self.buffers.pop(key, None)
        if entry is not None:
            entry.close()
            logger.debug(f"Closed buffer for {key}")

    def has_buffer(self, key: str) -> bool:
        with self.lock:
            return key in self.buffers

    def keys(self):
        with self.lock:
            return list(self.buffers)
