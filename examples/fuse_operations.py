# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved
'''
This example demonstrates reading EC2 instance metadata through a mounted
ec2-metadatafs filesystem.

Setup:
    # Install the package
    pip install ec2-metadatafs

    # Install FUSE on your system
    # On Ubuntu/Debian:
    sudo apt-get install fuse

    # On Amazon Linux / CentOS / RHEL:
    sudo yum install fuse

    # Create a mount point and mount
    mkdir -p /mnt/ec2-metadata
    ec2-metadatafs --tags /mnt/ec2-metadata

Usage:
    python fuse_operations.py <mountpoint>

Troubleshooting:
    # Run in the foreground with debug logging
    ec2-metadatafs -f -v /mnt/ec2-metadata

    # Unmount when done
    fusermount -u /mnt/ec2-metadata
'''
import sys
import os

def main():
    if len(sys.argv) != 2:
        print("Usage: python fuse_operations.py <mountpoint>")
        sys.exit(1)

    mountpoint = sys.argv[1]
    instance_id_file = os.path.join(mountpoint, "meta-data", "instance-id")

    # List the metadata tree
    try:
        print(f"meta-data: {sorted(os.listdir(os.path.join(mountpoint, 'meta-data')))}")
    except OSError as e:
        print(f"Listing failed: {e}")

    # Read a value
    try:
        with open(instance_id_file, 'r') as f:
            print(f"Instance ID: {f.read()}")
    except OSError as e:
        print(f"Read operation failed: {e}")

    # Writes are rejected
    try:
        with open(instance_id_file, 'w') as f:
            f.write("i-0000000")
    except OSError as e:
        print(f"Write rejected as expected: {e}")

    # Tags, when mounted with --tags
    tags_dir = os.path.join(mountpoint, "tags")
    if os.path.isdir(tags_dir):
        for name in sorted(os.listdir(tags_dir)):
            with open(os.path.join(tags_dir, name)) as f:
                print(f"tag {name} = {f.read()}")

if __name__ == '__main__':
    main()
