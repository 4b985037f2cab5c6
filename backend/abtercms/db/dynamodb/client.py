from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import boto3
from botocore.config import Config


@dataclass(frozen=True, slots=True)
class DynamoConfig:
    """Immutable configuration for DynamoDB access.

    Attributes
    ----------
    table_name: str
        The DynamoDB table holding the entities.
    region: str | None
        The AWS region; if omitted, boto3 resolves it from the environment.
    endpoint_url: str | None
        Override endpoint, eg, dynamodb-local under SAM.
    connect_timeout_s / read_timeout_s: float
        Socket timeouts for every call.
    """

    table_name: str
    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout_s: float = 2.0
    read_timeout_s: float = 10.0


def botocore_config(config: DynamoConfig) -> Config:
    # App-layer retries are out of scope; keep botocore to a single attempt so each
    # repository call is one round trip.
    return Config(
        retries={"total_max_attempts": 1, "mode": "standard"},
        connect_timeout=config.connect_timeout_s,
        read_timeout=config.read_timeout_s,
    )


@lru_cache(maxsize=8)
def dynamodb_client(config: DynamoConfig):
    return boto3.client(
        "dynamodb",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        config=botocore_config(config),
    )
