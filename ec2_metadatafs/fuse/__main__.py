# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Entry point for `python -m ec2_metadatafs.fuse`.

Usage:
    python -m ec2_metadatafs.fuse [options] <mountpoint>

    # Example: mount metadata and instance tags in the foreground
    python -m ec2_metadatafs.fuse --tags -f /mnt/ec2-metadata

    # Unmount when done
    fusermount -u /mnt/ec2-metadata
"""
from .fuse_mount import main

raise SystemExit(main())
