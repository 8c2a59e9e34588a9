# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
FUSE mount for bucketpath filesystems.

This module mounts one container of an :class:`ObjectFileSystem` as a local
directory. Every FUSE callback is translated into filesystem operations, so
the mount sees exactly the directory inference, attribute and transfer
semantics of the library.

Usage:
    # Create a mount point
    mkdir -p /mnt/my-bucket

    # Mount the container
    python -m bucketpath.fuse s3://s3.amazonaws.com/ my-bucket /mnt/my-bucket

    # Now you can work with the files as if they were local
    ls /mnt/my-bucket
    cat /mnt/my-bucket/example.txt
"""

import errno
import os
import sys
import time
from contextlib import contextmanager

from fuse import FUSE, FuseOSError, Operations

from ..fs.exceptions import (
    AccessDeniedError,
    DirectoryNotEmptyError,
    FileAlreadyExistsError,
    FileSystemError,
    NoSuchFileError,
    NotDirectoryError,
    UnsupportedOperationError,
)
from ..fs.path import SEPARATOR
from ..fs.registry import FileSystemContext
from ..fs.resolver import PathKind
from ..fs.transfer import CopyOption
from ..utils import configure_logging, logger, time_function, trace_op
from .buffer import WriteBuffer
from .mount_utils import get_mount_options, is_mounted, setup_signal_handlers, unmount

BLOCK_SIZE = 4096

DIRECTORY_MODE = 0o40755
FILE_MODE = 0o100644

_ERRNO_BY_ERROR = (
    (NoSuchFileError, errno.ENOENT),
    (FileAlreadyExistsError, errno.EEXIST),
    (DirectoryNotEmptyError, errno.ENOTEMPTY),
    (NotDirectoryError, errno.ENOTDIR),
    (AccessDeniedError, errno.EACCES),
    (UnsupportedOperationError, errno.ENOTSUP),
)


def errno_for(error: FileSystemError) -> int:
    """Map a filesystem error to the errno reported to the kernel."""
    for error_type, code in _ERRNO_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return errno.EIO


@contextmanager
def fuse_errors(operation, path):
    """
    Report failures of ``operation`` on ``path`` as FuseOSError.

    Filesystem errors map to their errno. Anything unexpected is logged and
    reported as EIO.
    """
    try:
        yield
    except FuseOSError:
        raise
    except FileSystemError as e:
        logger.debug(f"{operation} on {path} failed: {e}")
        raise FuseOSError(errno_for(e)) from e
    except Exception as e:
        logger.error(f"{operation} error for {path}: {str(e)}", exc_info=True)
        raise FuseOSError(errno.EIO) from e


class BucketPathFuse(Operations):
    """
    FUSE operations over one container of an ObjectFileSystem.

    Writes are collected in a :class:`WriteBuffer` per open file and uploaded
    as a whole object on flush, fsync and release.

    Attributes:
        filesystem (ObjectFileSystem): Filesystem serving the mount
        container (str): Name of the mounted container
        write_buffer (WriteBuffer): Pending writes keyed by FUSE path
    """

    def __init__(self, filesystem, container: str):
        logger.info(f"Initializing BucketPathFuse for container: {container}")
        self.filesystem = filesystem
        self.container = container
        self.write_buffer = WriteBuffer()

    def _path(self, path):
        """Convert a FUSE path to an absolute path inside the container."""
        relative = path.strip(SEPARATOR)
        if not relative:
            return self.filesystem.get_path(SEPARATOR + self.container)
        return self.filesystem.get_path(SEPARATOR + self.container, relative)

    def _stat(self, is_directory, size=0, mtime=None, atime=None, ctime=None):
        now = time.time()
        mtime = mtime or now
        result = {
            'st_uid': os.getuid(),
            'st_gid': os.getgid(),
            'st_mtime': mtime,
            'st_atime': atime or mtime,
            'st_ctime': ctime or mtime,
            'st_blksize': BLOCK_SIZE,
            'st_rdev': 0,
        }
        if is_directory:
            result.update({'st_mode': DIRECTORY_MODE, 'st_nlink': 2, 'st_size': BLOCK_SIZE, 'st_blocks': 8})
        else:
            blocks = (size + BLOCK_SIZE - 1) // BLOCK_SIZE
            result.update({'st_mode': FILE_MODE, 'st_nlink': 1, 'st_size': size, 'st_blocks': blocks})
        return result

    def getattr(self, path, fh=None):
        """
        Get file attributes.

        Files with pending writes report the buffered size. Implicit
        directories report the current time since they have no object of
        their own.

        Raises:
            FuseOSError: ENOENT if the path does not exist
        """
        trace_op("getattr", path, fh=fh)
        start_time = time.time()

        if self.write_buffer.has_buffer(path):
            return self._stat(False, size=self.write_buffer.get_size(path))

        with fuse_errors("getattr", path):
            attrs = self.filesystem.read_attributes(self._path(path))
            result = self._stat(
                attrs.is_directory,
                size=attrs.size,
                mtime=attrs.last_modified_time,
                atime=attrs.last_access_time,
                ctime=attrs.creation_time,
            )
        time_function("getattr", start_time)
        return result

    def readdir(self, path, fh):
        """
        List directory contents.

        Returns:
            list: ``.``, ``..`` and the names of the immediate children
        """
        trace_op("readdir", path, fh=fh)
        start_time = time.time()

        with fuse_errors("readdir", path):
            entries = ['.', '..']
            with self.filesystem.list_directory(self._path(path)) as listing:
                entries.extend(str(child.file_name) for child in listing)
        logger.debug(f"readdir returning {len(entries)} entries for {path}")
        time_function("readdir", start_time)
        return entries

    def open(self, path, flags):
        """
        Open a file.

        Read-only opens only check that the file exists. Opens for writing
        load the current content into a write buffer, unless the file is
        being truncated, because the object is replaced as a whole on flush.
        """
        trace_op("open", path, flags=flags)
        start_time = time.time()

        target = self._path(path)
        is_readonly = (flags & os.O_ACCMODE) == os.O_RDONLY
        with fuse_errors("open", path):
            if is_readonly:
                if not self.filesystem.exists(target):
                    raise FuseOSError(errno.ENOENT)
            elif not self.write_buffer.has_buffer(path):
                if not flags & os.O_TRUNC and self.filesystem.is_regular_file(target):
                    self.write_buffer.initialize_buffer(path, self.filesystem.read_bytes(target))
                else:
                    self.write_buffer.initialize_buffer(path, dirty=True)

        time_function("open", start_time)
        return 0

    def read(self, path, size, offset, fh):
        """
        Read file contents.

        Pending writes are served from the write buffer; otherwise a ranged
        GET fetches just the requested bytes.
        """
        trace_op("read", path, size=size, offset=offset, fh=fh)
        start_time = time.time()

        if self.write_buffer.has_buffer(path):
            data = self.write_buffer.read(path, offset=offset, size=size)
            if data is not None:
                logger.debug(f"Read {len(data)} bytes from write buffer for {path} at offset {offset}")
                return data

        target = self._path(path)
        with fuse_errors("read", path):
            total = self.filesystem.read_attributes(target).size
            if size <= 0 or offset >= total:
                return b""
            end = min(offset + size, total) - 1
            data = self.filesystem.read_bytes(target, (offset, end))

        time_function("read", start_time)
        return data

    def write(self, path, data, offset, fh):
        """Write data into the file's buffer."""
        trace_op("write", path, offset=offset, size=len(data))
        with fuse_errors("write", path):
            bytes_written = self.write_buffer.write(path, data, offset)
        if bytes_written != len(data):
            logger.error(f"write: Incomplete write for {path}. Expected {len(data)} bytes, wrote {bytes_written}")
            raise FuseOSError(errno.EIO)
        return bytes_written

    def create(self, path, mode, fi=None):
        """
        Create a new file.

        An empty object is written right away so the file is visible to
        getattr before the first flush.
        """
        trace_op("create", path, mode=oct(mode))
        start_time = time.time()

        with fuse_errors("create", path):
            self.filesystem.write_bytes(self._path(path), b"")
            self.write_buffer.remove(path)
            self.write_buffer.initialize_buffer(path)

        time_function("create", start_time)
        return 0

    def truncate(self, path, length, fh=None):
        """
        Truncate file to ``length`` bytes, extending it with zeros if needed.

        Without an open write buffer the object is fetched, resized and
        uploaded again.
        """
        trace_op("truncate", path, length=length, fh=fh)
        start_time = time.time()

        if self.write_buffer.has_buffer(path):
            self.write_buffer.truncate(path, length)
            return 0

        target = self._path(path)
        with fuse_errors("truncate", path):
            if self.filesystem.is_regular_file(target):
                data = self.filesystem.read_bytes(target)
            elif length == 0:
                data = b""
            else:
                raise FuseOSError(errno.ENOENT)

            if length < len(data):
                data = data[:length]
            else:
                data += b"\0" * (length - len(data))
            self.filesystem.write_bytes(target, data)

        time_function("truncate", start_time)
        return 0

    def _flush_buffer(self, path):
        """
        Upload the write buffer of ``path`` as the object's new content.

        Only modified buffers are uploaded. The buffer itself is kept;
        release removes it.
        """
        if not self.write_buffer.is_dirty(path):
            logger.debug(f"No pending writes to flush for {path}")
            return
        with self.write_buffer.lock:
            data = self.write_buffer.read(path)
            self.write_buffer.set_dirty(path, False)

        upload_start = time.time()
        try:
            self.filesystem.write_bytes(self._path(path), data)
        except Exception:
            self.write_buffer.set_dirty(path, True)
            raise
        upload_time = time.time() - upload_start
        if data:
            throughput_mbps = (len(data) / (1024 * 1024)) / upload_time if upload_time > 0 else float('inf')
            logger.info(f"Flushed {len(data)/(1024*1024):.2f}MB to {path} in {upload_time:.2f}s "
                        f"({throughput_mbps:.2f} MB/s)")
        else:
            logger.info(f"Flushed empty buffer for {path} in {upload_time:.2f}s")

    def flush(self, path, fh):
        trace_op("flush", path, fh=fh)
        with fuse_errors("flush", path):
            self._flush_buffer(path)
        return 0

    def fsync(self, path, datasync, fh):
        trace_op("fsync", path, datasync=datasync, fh=fh)
        with fuse_errors("fsync", path):
            self._flush_buffer(path)
        return 0

    def release(self, path, fh):
        """
        Upload pending writes and drop the file's write buffer.

        The buffer is dropped even when the upload fails.
        """
        trace_op("release", path, fh=fh)
        start_time = time.time()
        try:
            with fuse_errors("release", path):
                self._flush_buffer(path)
        finally:
            self.write_buffer.remove(path)
        time_function("release", start_time)
        return 0

    def flush_all(self):
        """Upload every pending write buffer, e.g. before unmounting."""
        for path in self.write_buffer.keys():
            try:
                self._flush_buffer(path)
            except FileSystemError as e:
                logger.error(f"Error flushing buffer for {path} during cleanup: {e}", exc_info=True)

    def unlink(self, path):
        """Delete a file."""
        trace_op("unlink", path)
        start_time = time.time()
        self.write_buffer.remove(path)
        with fuse_errors("unlink", path):
            self.filesystem.delete(self._path(path))
        time_function("unlink", start_time)
        return 0

    def mkdir(self, path, mode):
        """Create a directory marker object."""
        trace_op("mkdir", path, mode=oct(mode))
        start_time = time.time()
        with fuse_errors("mkdir", path):
            self.filesystem.create_directory(self._path(path))
        time_function("mkdir", start_time)
        return 0

    def rmdir(self, path):
        """
        Remove an empty directory.

        Raises:
            FuseOSError: ENOTDIR for a plain file, ENOTEMPTY if it has children
        """
        trace_op("rmdir", path)
        start_time = time.time()
        target = self._path(path)
        with fuse_errors("rmdir", path):
            kinds = self.filesystem.classify(target)
            if not kinds:
                raise FuseOSError(errno.ENOENT)
            if PathKind.DIRECTORY not in kinds:
                raise FuseOSError(errno.ENOTDIR)
            self.filesystem.delete(target)
        time_function("rmdir", start_time)
        return 0

    def rename(self, old, new):
        """
        Rename a file by copying it and deleting the source.

        Pending writes of ``old`` are uploaded first. Directories cannot be
        renamed and report ENOTSUP.
        """
        trace_op("rename", new, old=old)
        start_time = time.time()
        with fuse_errors("rename", old):
            if self.write_buffer.has_buffer(old):
                self._flush_buffer(old)
                self.write_buffer.remove(old)
            self.filesystem.move(self._path(old), self._path(new), CopyOption.REPLACE_EXISTING)
        time_function("rename", start_time)
        return 0

    def utimens(self, path, times=None):
        """
        Set access and modification times.

        Times are recorded in the object's metadata. Directories have no
        timestamps of their own, so the call is accepted and ignored.
        """
        trace_op("utimens", path, times=times)
        now = time.time()
        atime, mtime = times if times else (now, now)
        target = self._path(path)
        with fuse_errors("utimens", path):
            if self.write_buffer.has_buffer(path):
                self._flush_buffer(path)
            kinds = self.filesystem.classify(target)
            if PathKind.FILE not in kinds:
                if kinds:
                    return 0
                raise FuseOSError(errno.ENOENT)
            view = self.filesystem.get_attribute_view(target)
            view.set_times(last_modified_time=mtime, last_access_time=atime)
        return 0

    def chmod(self, path, mode):
        """Permissions come from ACL grants and cannot be changed; no-op."""
        logger.debug(f"chmod requested for path: {path}, mode={oct(mode)} - NO-OP")
        return 0

    def chown(self, path, uid, gid):
        logger.debug(f"chown requested for path: {path}, uid={uid}, gid={gid} - NO-OP")
        return 0

    def statfs(self, path):
        """
        Get filesystem statistics.

        Object stores have no fixed capacity, so a large, empty filesystem is
        reported.
        """
        trace_op("statfs", path)
        total_blocks = 1250000000  # 5TB
        return {
            'f_bsize': BLOCK_SIZE,
            'f_frsize': BLOCK_SIZE,
            'f_blocks': total_blocks,
            'f_bfree': total_blocks,
            'f_bavail': total_blocks,
            'f_files': 1000000000,
            'f_ffree': 999999999,
            'f_favail': 999999999,
            'f_flag': 0,
            'f_namemax': 255,
        }


def _prepare_mountpoint(mountpoint):
    """Create ``mountpoint`` if needed; False when it cannot be used."""
    if os.path.exists(mountpoint):
        if not os.path.isdir(mountpoint):
            logger.error(f"Mountpoint path exists but is not a directory: {mountpoint}")
            print(f"Error: {mountpoint} exists but is not a directory. Please specify a directory path.")
            return False
        if not os.access(mountpoint, os.W_OK):
            logger.error(f"Mountpoint {mountpoint} exists but is not writable")
            print(f"Error: You don't have write permission for {mountpoint}.")
            print(f"Try: sudo chown $(whoami) {mountpoint}")
            return False
        return True

    logger.info(f"Mountpoint {mountpoint} does not exist, creating it...")
    try:
        os.makedirs(mountpoint, mode=0o755)
    except OSError as e:
        logger.error(f"Failed to create mountpoint {mountpoint}: {str(e)}")
        print(f"Error: Failed to create mountpoint directory {mountpoint}: {str(e)}")
        print(f"Try: sudo mkdir -p {mountpoint}")
        return False
    print(f"Created mountpoint directory: {mountpoint}")
    return True


def mount(uri: str, container: str, mountpoint: str, foreground: bool = True, allow_other: bool = False,
          context: FileSystemContext = None, config=None):
    """
    Mount a container at the specified mountpoint.

    Args:
        uri (str): Filesystem URI, e.g. ``s3://s3.amazonaws.com/``
        container (str): Name of the container to mount
        mountpoint (str): Local path where the filesystem should be mounted
        foreground (bool, optional): Run in foreground. Defaults to True.
        allow_other (bool, optional): Allow other users to access the mount.
            Requires 'user_allow_other' in /etc/fuse.conf. Defaults to False.
        context (FileSystemContext, optional): Context to open the filesystem in
        config (dict, optional): Explicit filesystem properties
    """
    logger.info(f"Mounting container {container} from {uri} at {mountpoint}")
    start_time = time.time()

    if not _prepare_mountpoint(mountpoint):
        return

    if is_mounted(mountpoint):
        logger.warning(f"Mountpoint {mountpoint} is already mounted")
        print(f"Error: {mountpoint} is already mounted. Unmount it first:")
        print(f"fusermount -u {mountpoint}")
        return

    context = context or FileSystemContext()
    filesystem = context.registry.get_or_open(uri, config)
    operations = BucketPathFuse(filesystem, container)
    options = get_mount_options(foreground, allow_other, attr_timeout=filesystem.cache_config.ttl)

    setup_signal_handlers(mountpoint, lambda mp: unmount(mp, operations))

    try:
        logger.info(f"Starting FUSE mount with options: {options}")
        FUSE(operations, mountpoint, nothreads=False, **options)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, unmounting...")
        unmount(mountpoint, operations)
    except RuntimeError as e:
        logger.error(f"Error during mount: {type(e).__name__}: {str(e)}")
        print(f"Error: {type(e).__name__}: {str(e)}")
        unmount(mountpoint, operations)
    finally:
        operations.flush_all()
        filesystem.close()
        time_function("mount", start_time)


def main(argv=None):
    """
    CLI entry point for mounting a container.

    Usage:
        python -m bucketpath.fuse <uri> <container> <mountpoint>

    Options:
        --allow-other: Allow other users to access the mount
            (requires user_allow_other in /etc/fuse.conf)
        --background: Detach from the terminal once mounted
        --trace: Enable detailed tracing of file operations for debugging
    """
    import argparse
    parser = argparse.ArgumentParser(description='Mount an object store container as a local filesystem')
    parser.add_argument('uri', help='Filesystem URI, e.g. s3://s3.amazonaws.com/ or s3://key:secret@host/')
    parser.add_argument('container', help='The name of the container (bucket) to mount')
    parser.add_argument('mountpoint', help='The directory to mount the container on')
    parser.add_argument('--allow-other', action='store_true',
                        help='Allow other users to access the mount (requires user_allow_other in /etc/fuse.conf)')
    parser.add_argument('--background', action='store_true', help='Run the mount in the background')
    parser.add_argument('--trace', action='store_true',
                        help='Enable detailed tracing of file operations for debugging')

    args = parser.parse_args(argv)

    configure_logging()
    if args.trace:
        os.environ['BUCKETPATH_TRACE_OPS'] = 'true'
        print("Detailed operation tracing enabled")

    logger.info(f"Starting bucketpath FUSE CLI with arguments: {sys.argv}")
    mount(args.uri, args.container, args.mountpoint, foreground=not args.background, allow_other=args.allow_other)


if __name__ == '__main__':
    main()
