# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from ec2_metadatafs.client import NotFoundError, new_metadata_client
from ec2_metadatafs.fuse.metadatafs import MetadataFs

def main():
    # Create a client for the session-token API
    client = new_metadata_client(imds_version=2)
    fs = MetadataFs(client)

    try:
        # List the top of the metadata tree
        for entry in fs.listing("meta-data"):
            print(f"- {entry.name} ({entry.kind.value})")

        # Get attributes of a value
        attr = fs.attributes("meta-data/instance-id")
        print(f"instance-id size: {attr.size} bytes")
        print(f"Last modified: {attr.modified_at}")

        # Read a value
        print(f"Instance ID: {fs.read_file('meta-data/instance-id').decode()}")

        # Missing values raise NotFoundError
        try:
            fs.read_file("user-data")
        except NotFoundError:
            print("No user-data configured")
    finally:
        client.close()

if __name__ == "__main__":
    main()
