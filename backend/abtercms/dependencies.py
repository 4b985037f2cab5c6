from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from .db.dynamodb import DynamoConfig, Repository
from .ids import IdGenerator
from .models import Website
from .op_context import OpContext
from .problem_details import new_problem
from .settings import Settings, get_settings


def dynamo_config_from_settings(settings: Settings) -> DynamoConfig:
    if not settings.ddb_table_name:
        raise new_problem(500, "TABLE_NAME is not set", detail="storage is not configured")
    return DynamoConfig(
        table_name=settings.ddb_table_name,
        region=settings.aws_region,
        endpoint_url=settings.dynamodb_endpoint_url,
        connect_timeout_s=settings.ddb_connect_timeout_s,
        read_timeout_s=settings.ddb_read_timeout_s,
    )


@lru_cache(maxsize=1)
def get_websites_repo() -> Repository[Website]:
    return Repository.from_config(Website, dynamo_config_from_settings(get_settings()))


@lru_cache(maxsize=1)
def get_id_generator() -> IdGenerator:
    return IdGenerator()


def get_op_context(request: Request) -> OpContext:
    ctx = getattr(request.state, "op_context", None)
    if isinstance(ctx, OpContext):
        return ctx
    return OpContext.with_timeout(get_settings().request_timeout_s)
