# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
FUSE implementation for the EC2 Instance Metadata Service.

This module mounts the metadata tree of the running instance as a
read-only filesystem, mirroring the URL structure of the metadata service.
Instance tags can optionally be mounted alongside, under tags/.

Usage:
    # Create a mount point
    mkdir -p /mnt/ec2-metadata

    # Mount the metadata service
    python -m ec2_metadatafs.fuse /mnt/ec2-metadata

    # Now you can read metadata as files
    ls /mnt/ec2-metadata/meta-data
    cat /mnt/ec2-metadata/meta-data/instance-id
"""

from fuse import FUSE, FuseOSError, Operations
import argparse
import errno
import os
import time
from contextlib import contextmanager

from .. import __version__
from ..client.exceptions import ConfigurationError, MetadataFsError
from ..client.metadata import DEFAULT_ENDPOINT, new_metadata_client
from ..client.tags import TagClient
from ..client.token import DEFAULT_TOKEN_TTL
from ..client.types import Attribute
from .cache import CachingFs
from .metadatafs import MetadataFs
from .mount_utils import get_mount_options, is_mounted, setup_signal_handlers, unmount
from .tagsfs import TagsFs
from ..log import configure_logging, logger
from .utils import time_function, trace_op

TAGS_DIR = "tags"
WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC

class MetadataFuse(Operations):
    """
    FUSE operations for the metadata filesystem.

    Kernel paths are turned into metadata paths and dispatched to the
    metadata filesystem, or to the tags filesystem for paths under tags/
    when one is configured. Filesystem errors are mapped to errno values;
    every operation that would modify the tree is rejected with EPERM.

    Attributes:
        metadata_fs: MetadataFs, possibly wrapped in a CachingFs
        tags_fs: TagsFs, possibly wrapped in a CachingFs, or None
    """

    def __init__(self, metadata_fs, tags_fs=None):
        self.metadata_fs = metadata_fs
        self.tags_fs = tags_fs
        self.uid = os.getuid()
        self.gid = os.getgid()

    def _route(self, path):
        """
        Convert a FUSE path to the filesystem responsible for it and its remote path.

        Args:
            path (str): FUSE path, e.g. /meta-data/instance-id

        Returns:
            tuple: (filesystem, remote path without leading slash)
        """
        rel = path.strip('/')
        if self.tags_fs is not None:
            if rel == TAGS_DIR:
                return self.tags_fs, ''
            if rel.startswith(TAGS_DIR + '/'):
                return self.tags_fs, rel[len(TAGS_DIR) + 1:]
        return self.metadata_fs, rel

    @contextmanager
    def _errors(self, operation, path):
        try:
            yield
        except FuseOSError:
            raise
        except MetadataFsError as e:
            raise FuseOSError(e.errno) from e
        except Exception as e:
            logger.error(f"{operation} error for {path}: {e}", exc_info=True)
            raise FuseOSError(errno.EIO) from e

    def _to_stat(self, attr: Attribute):
        mtime = attr.modified_at or 0.0
        return {
            'st_mode': attr.mode,
            'st_nlink': 2 if attr.is_dir else 1,
            'st_size': attr.size,
            'st_uid': self.uid,
            'st_gid': self.gid,
            'st_atime': mtime,
            'st_mtime': mtime,
            'st_ctime': mtime,
        }

    def getattr(self, path, fh=None):
        """
        Get file attributes.

        Args:
            path (str): Path to the file or directory
            fh (int, optional): File handle

        Returns:
            dict: File attributes

        Raises:
            FuseOSError: ENOENT if the path does not exist, EIO on backend failure
        """
        trace_op("getattr", path, fh=fh)
        start_time = time.time()
        fs, rel = self._route(path)
        with self._errors("getattr", path):
            attr = fs.attributes(rel)
        time_function("getattr", start_time)
        return self._to_stat(attr)

    def readdir(self, path, fh):
        """
        List directory contents.

        Args:
            path (str): Path to the directory
            fh (int): File handle

        Returns:
            list: Entry names including '.' and '..'

        Raises:
            FuseOSError: ENOENT, ENOTDIR or EIO
        """
        trace_op("readdir", path, fh=fh)
        start_time = time.time()
        fs, rel = self._route(path)
        with self._errors("readdir", path):
            names = [entry.name for entry in fs.listing(rel)]
        if fs is self.metadata_fs and rel == '' and self.tags_fs is not None:
            names.append(TAGS_DIR)
        time_function("readdir", start_time)
        return ['.', '..'] + names

    def open(self, path, flags):
        """
        Open a file for reading. Any write access mode is rejected.

        Args:
            path (str): Path to the file
            flags (int): open(2) flags

        Returns:
            int: 0, handles are not used
        """
        trace_op("open", path, flags=flags)
        if flags & WRITE_FLAGS:
            logger.debug(f"open: rejecting write access to {path}")
            raise FuseOSError(errno.EPERM)
        return 0

    def read(self, path, size, offset, fh):
        """
        Read file contents.

        The whole value is fetched and the requested window returned.

        Args:
            path (str): Path to the file
            size (int): Number of bytes to read
            offset (int): Offset in the file to start reading from
            fh (int): File handle

        Returns:
            bytes: The requested data
        """
        trace_op("read", path, size=size, offset=offset, fh=fh)
        fs, rel = self._route(path)
        with self._errors("read", path):
            data = fs.read_file(rel)
        return data[offset:offset + size]

    def statfs(self, path):
        trace_op("statfs", path)
        fs, _ = self._route(path)
        return fs.statfs()

    def access(self, path, mode):
        if mode & os.W_OK:
            raise FuseOSError(errno.EACCES)
        return 0

    def _read_only(self, operation, path):
        logger.debug(f"{operation} requested for {path} - rejected, filesystem is read-only")
        raise FuseOSError(errno.EPERM)

    def chmod(self, path, mode):
        self._read_only("chmod", path)

    def chown(self, path, uid, gid):
        self._read_only("chown", path)

    def create(self, path, mode, fi=None):
        self._read_only("create", path)

    def link(self, target, source):
        self._read_only("link", target)

    def mkdir(self, path, mode):
        self._read_only("mkdir", path)

    def mknod(self, path, mode, dev):
        self._read_only("mknod", path)

    def rename(self, old, new):
        self._read_only("rename", old)

    def rmdir(self, path):
        self._read_only("rmdir", path)

    def setxattr(self, path, name, value, options, position=0):
        self._read_only("setxattr", path)

    def removexattr(self, path, name):
        self._read_only("removexattr", path)

    def symlink(self, target, source):
        self._read_only("symlink", target)

    def truncate(self, path, length, fh=None):
        self._read_only("truncate", path)

    def unlink(self, path):
        self._read_only("unlink", path)

    def utimens(self, path, times=None):
        self._read_only("utimens", path)

    def write(self, path, data, offset, fh):
        self._read_only("write", path)

def _discover(metadata_fs, path):
    return metadata_fs.read_file(path).decode('utf-8').strip()

def build_tags_fs(metadata_fs, instance_id=None, region=None):
    """
    Build the tags filesystem for the running instance.

    The instance ID and region default to the values published by the
    metadata service itself.

    Args:
        metadata_fs: Filesystem used to discover missing values
        instance_id (str, optional): Instance whose tags are exposed
        region (str, optional): AWS region of the EC2 API

    Returns:
        TagsFs: The tags filesystem
    """
    if not instance_id:
        instance_id = _discover(metadata_fs, 'meta-data/instance-id')
        logger.info(f"Discovered instance ID {instance_id}")
    if not region:
        try:
            region = _discover(metadata_fs, 'meta-data/placement/region')
        except MetadataFsError:
            # older metadata versions only publish the availability zone
            region = _discover(metadata_fs, 'meta-data/placement/availability-zone')[:-1]
        logger.info(f"Discovered region {region}")
    return TagsFs(TagClient(instance_id, region=region))

def build_operations(endpoint=DEFAULT_ENDPOINT, imds_version=2, token_ttl=DEFAULT_TOKEN_TTL,
                     tags=False, instance_id=None, region=None, cache_ttl=0, timeout=None):
    """
    Assemble the FUSE operations object from mount configuration.

    Returns:
        MetadataFuse: Operations ready to be passed to FUSE

    Raises:
        ConfigurationError: If the configuration is invalid
        MetadataFsError: If tag discovery fails
    """
    client = new_metadata_client(endpoint, imds_version=imds_version,
                                 token_ttl=token_ttl, timeout=timeout)
    metadata_fs = MetadataFs(client)
    tags_fs = build_tags_fs(metadata_fs, instance_id, region) if tags else None

    if cache_ttl < 0:
        raise ConfigurationError(f"cache TTL must not be negative, got {cache_ttl}")
    if cache_ttl > 0:
        logger.info(f"Caching responses for {cache_ttl}s")
        metadata_fs = CachingFs(metadata_fs, cache_ttl)
        if tags_fs is not None:
            tags_fs = CachingFs(tags_fs, cache_ttl)
    return MetadataFuse(metadata_fs, tags_fs)

def mount(mountpoint, foreground=False, allow_other=False, debug=False, **config):
    """
    Mount the metadata service at the specified mountpoint.

    Args:
        mountpoint (str): Local directory where the filesystem should be mounted
        foreground (bool, optional): Run in foreground. Defaults to False.
        allow_other (bool, optional): Allow other users to access the mount.
        debug (bool, optional): Enable libfuse debug output.
        **config: Passed to build_operations

    Returns:
        int: Process exit status
    """
    logger.info(f"Mounting metadata service at {mountpoint}")
    start_time = time.time()

    if not os.path.isdir(mountpoint):
        logger.error(f"Mountpoint {mountpoint} does not exist or is not a directory")
        return 1
    if is_mounted(mountpoint):
        logger.error(f"Mountpoint {mountpoint} is already mounted")
        return 1

    try:
        operations = build_operations(**config)
    except MetadataFsError as e:
        logger.error(f"Cannot mount: {e}")
        return 1

    options = get_mount_options(foreground, allow_other, debug)
    if foreground:
        setup_signal_handlers(mountpoint, unmount)

    try:
        logger.info(f"Starting FUSE mount with options: {options}")
        FUSE(operations, mountpoint, nothreads=False, **options)
    except RuntimeError as e:
        logger.error(f"Error during mount: {e}")
        return 1
    finally:
        time_function("mount", start_time)
    return 0

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='ec2-metadatafs',
        description='Mount the EC2 instance metadata service as a read-only filesystem')
    parser.add_argument('mountpoint', help='The directory to mount the metadata on')
    parser.add_argument('--endpoint', default=os.environ.get('EC2_METADATAFS_ENDPOINT', DEFAULT_ENDPOINT),
                        help='AWS EC2 metadata endpoint (default: %(default)s)')
    parser.add_argument('--imds-version', type=int, choices=(1, 2), default=2,
                        help='Metadata service API version (default: %(default)s)')
    parser.add_argument('--token-ttl', type=int, default=DEFAULT_TOKEN_TTL,
                        help='IMDSv2 session token lifetime in seconds (default: %(default)s)')
    parser.add_argument('--tags', action='store_true',
                        help='Also mount instance tags under tags/ (requires ec2:DescribeTags)')
    parser.add_argument('--instance-id', help='Instance whose tags are mounted (default: this instance)')
    parser.add_argument('--aws-region', help='Region of the EC2 API (default: this instance\'s region)')
    parser.add_argument('--cache-ttl', type=float, default=0,
                        help='Cache responses for this many seconds, 0 disables (default: %(default)s)')
    parser.add_argument('--timeout', type=float, help='HTTP request timeout in seconds')
    parser.add_argument('-f', '--foreground', action='store_true', help='Run in the foreground')
    parser.add_argument('--allow-other', action='store_true',
                        help='Allow other users to access the mount (requires user_allow_other in /etc/fuse.conf)')
    parser.add_argument('--syslog', action='store_true', help='Also send log messages to syslog')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--trace', action='store_true',
                        help='Enable detailed tracing of file operations for debugging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)

def main(argv=None):
    """
    CLI entry point for mounting the metadata service.

    Usage:
        ec2-metadatafs [options] <mountpoint>
    """
    args = parse_args(argv)

    if args.trace:
        os.environ['EC2_METADATAFS_TRACE_OPS'] = 'true'
    configure_logging(verbose=args.verbose or args.trace, syslog=args.syslog)

    return mount(
        args.mountpoint,
        foreground=args.foreground,
        allow_other=args.allow_other,
        debug=args.verbose,
        endpoint=args.endpoint,
        imds_version=args.imds_version,
        token_ttl=args.token_ttl,
        tags=args.tags,
        instance_id=args.instance_id,
        region=args.aws_region,
        cache_ttl=args.cache_ttl,
        timeout=args.timeout,
    )

if __name__ == '__main__':
    raise SystemExit(main())
