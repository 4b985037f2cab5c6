"""Shared DynamoDB utilities.

This package centralizes:
- boto3 client configuration
- mapping of botocore failures onto typed errors and HTTP problems
- cursor pagination over table scans
- the generic item repository
"""

from .client import DynamoConfig, dynamodb_client
from .pagination import Key, decode_cursor, encode_cursor, make_key
from .repository import Page, Repository

__all__ = [
    "DynamoConfig",
    "Key",
    "Page",
    "Repository",
    "decode_cursor",
    "dynamodb_client",
    "encode_cursor",
    "make_key",
]
