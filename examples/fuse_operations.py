# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
'''
This example demonstrates reading and writing files through a container mounted
with the bucketpath FUSE mount.

Setup:
    # Install the package
    pip install bucketpath

    # Install FUSE on your system
    # On Ubuntu/Debian:
    sudo apt-get install fuse

    # On CentOS/RHEL:
    sudo yum install fuse

    # Configure credentials, either in the URI or the environment
    export BUCKETPATH_ACCESS_KEY=your_access_key_id
    export BUCKETPATH_SECRET_KEY=your_secret_access_key

    # Create a mount point
    mkdir -p /mnt/my-bucket

Usage:
    # Mount a container
    python -m bucketpath.fuse <uri> <container> <mountpoint>

    # Example
    bucketpath-mount s3://s3.amazonaws.com/ my-bucket /mnt/my-bucket

    # Run this example against the mount
    python fuse_operations.py /mnt/my-bucket

    # Unmount when done
    fusermount -u /mnt/my-bucket

Troubleshooting:
    # Trace every FUSE operation
    bucketpath-mount --trace s3://s3.amazonaws.com/ my-bucket /mnt/my-bucket

    # Check if FUSE is properly installed
    which fusermount
'''
import sys
import os

def main():
    if len(sys.argv) != 2:
        print("Usage: python fuse_operations.py <mountpoint>")
        sys.exit(1)

    mountpoint = sys.argv[1]
    directory = os.path.join(mountpoint, "example")
    example_file = os.path.join(directory, "example.txt")

    # Directories are stored as empty marker objects
    os.makedirs(directory, exist_ok=True)
    print(f"Directory available: {directory}")

    # Writes are buffered and uploaded when the file is closed
    with open(example_file, 'w') as f:
        f.write("Hello FUSE")
    print(f"File created and written: {example_file}")

    # Appending re-uploads the whole object
    with open(example_file, 'a') as f:
        f.write(", again")

    with open(example_file, 'r') as f:
        content = f.read()
    print(f"Content read from file: {content}")
    print(f"Directory listing: {os.listdir(directory)}")

    # Rename is a copy followed by a delete
    renamed = os.path.join(directory, "renamed.txt")
    os.rename(example_file, renamed)
    print(f"File renamed to: {renamed}")

    os.remove(renamed)
    os.rmdir(directory)
    print(f"Removed {renamed} and {directory}")

if __name__ == '__main__':
    main()
