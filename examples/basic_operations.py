# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from bucketpath import CopyOption, FileSystemContext
import uuid

def main():
    # Open the filesystem for the default AWS endpoint; credentials come from
    # BUCKETPATH_ACCESS_KEY / BUCKETPATH_SECRET_KEY or the packaged defaults
    context = FileSystemContext()
    fs = context.registry.open("s3://s3.amazonaws.com/")

    try:
        # Create a container and a directory inside it
        bucket = f"my-test-bucket-{uuid.uuid4()}"
        fs.create_directory(f"/{bucket}/docs")
        print(f"Created directory: /{bucket}/docs")

        # Upload a file
        fs.write_bytes(f"/{bucket}/docs/hello.txt", b"Hello, World!")
        print("Uploaded file: docs/hello.txt")

        # Read its attributes
        attrs = fs.read_attributes(f"/{bucket}/docs/hello.txt")
        print(f"File size: {attrs.size} bytes")
        print(f"Last modified: {attrs.last_modified_time}")

        # Download the file, then just the first five bytes
        print(f"Downloaded content: {fs.read_bytes(f'/{bucket}/docs/hello.txt').decode()}")
        print(f"First bytes: {fs.read_bytes(f'/{bucket}/docs/hello.txt', (0, 4)).decode()}")

        # Copy and rename
        fs.copy(f"/{bucket}/docs/hello.txt", f"/{bucket}/docs/copy.txt")
        fs.move(f"/{bucket}/docs/copy.txt", f"/{bucket}/docs/renamed.txt", CopyOption.REPLACE_EXISTING)

        # List the directory
        print("Files in docs:")
        with fs.list_directory(f"/{bucket}/docs") as listing:
            for child in listing:
                print(f"- {child.file_name}")

        # Delete everything again
        fs.delete(f"/{bucket}/docs/hello.txt")
        fs.delete(f"/{bucket}/docs/renamed.txt")
        fs.delete_if_exists(f"/{bucket}/docs")
        print("Deleted files")

    finally:
        fs.close()

if __name__ == "__main__":
    main()
