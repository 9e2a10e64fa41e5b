# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Read-only FUSE filesystem for the EC2 instance metadata service and instance tags."""

__version__ = "0.1.0"
