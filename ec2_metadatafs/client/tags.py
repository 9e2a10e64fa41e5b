# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
EC2 tag queries for the mounted instance.

This module wraps the EC2 DescribeTags API. Every query is scoped to one
instance through the resource-id filter and may additionally be narrowed
to a single tag key. Credentials and region are resolved by boto3.
"""
from typing import Iterator, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import BackendIOError
from .types import TagEntry
from ..log import logger

class TagClient:
    """
    Read-only view of the tags attached to one EC2 instance.

    Attributes:
        instance_id (str): Resource the tags belong to
        ec2: boto3 EC2 client
    """

    def __init__(self, instance_id: str, ec2=None, region: Optional[str] = None):
        self.instance_id = instance_id
        self.ec2 = ec2 if ec2 is not None else boto3.client("ec2", region_name=region)

    def _filters(self, key: Optional[str]) -> List[dict]:
        filters = [{"Name": "resource-id", "Values": [self.instance_id]}]
        if key is not None:
            filters.insert(0, {"Name": "key", "Values": [key]})
        return filters

    def describe(self, key: Optional[str] = None) -> Iterator[TagEntry]:
        """
        Yield the instance's tags, optionally only those with the given key.

        Args:
            key (str, optional): Restrict results to this tag key

        Yields:
            TagEntry: One entry per matching tag

        Raises:
            BackendIOError: If the EC2 API call fails
        """
        kwargs = {"Filters": self._filters(key)}
        while True:
            logger.debug(f"issuing DescribeTags for instance {self.instance_id}, key={key}")
            try:
                resp = self.ec2.describe_tags(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise BackendIOError(f"DescribeTags failed: {e}") from e
            for tag in resp.get("Tags", []):
                yield TagEntry(key=tag["Key"], value=tag.get("Value", ""))
            next_token = resp.get("NextToken")
            if not next_token:
                return
            kwargs["NextToken"] = next_token

    def find(self, key: str) -> Optional[TagEntry]:
        """Return the tag with the given key, or None."""
        for entry in self.describe(key):
            if entry.key == key:
                return entry
        return None
