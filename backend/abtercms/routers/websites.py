from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response

from ..db.dynamodb import Repository, decode_cursor, make_key
from ..dependencies import get_id_generator, get_op_context, get_websites_repo
from ..ids import IdGenerator
from ..models import Website
from ..op_context import OpContext
from ..problem_details import new_problem
from ..settings import get_settings

router = APIRouter(tags=["websites"])

ERR_INVALID_ID = "primary key is required"
ERR_PRIMARY_KEY_NOT_ALLOWED = "primary key is not allowed when creating entity: %s"
ERR_PRIMARY_KEY_MISMATCH = "primary key in body (%s) does not match path (%s)"


def _require_id(id: str) -> str:
    wid = str(id or "").strip()
    if not wid:
        raise new_problem(400, ERR_INVALID_ID, detail=ERR_INVALID_ID)
    return wid


def _page_limit(limit: int | None) -> int:
    settings = get_settings()
    lim = settings.page_limit if limit is None else int(limit)
    return max(1, min(settings.max_page_limit, lim))


@router.get("")
def retrieve_collection(
    exclusive_start_key: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    ctx: OpContext = Depends(get_op_context),
    repo: Repository[Website] = Depends(get_websites_repo),
):
    page = repo.list(ctx, _page_limit(limit), decode_cursor(exclusive_start_key))

    out: dict[str, Any] = {"items": [w.model_dump() for w in page.items]}
    cursor = page.next_cursor
    if cursor:
        out["last_evaluated_key"] = cursor
    if page.scanned_count:
        out["scanned_count"] = page.scanned_count
    return out


@router.post("", status_code=201)
def create_entity(
    entity: Website,
    ctx: OpContext = Depends(get_op_context),
    repo: Repository[Website] = Depends(get_websites_repo),
    ids: IdGenerator = Depends(get_id_generator),
):
    if entity.pk:
        msg = ERR_PRIMARY_KEY_NOT_ALLOWED % entity.pk
        raise new_problem(400, msg, detail=msg)

    entity.pk = ids.new_string()
    repo.create(ctx, entity)
    return entity.model_dump()


@router.get("/{id}")
def retrieve_entity(
    id: str,
    ctx: OpContext = Depends(get_op_context),
    repo: Repository[Website] = Depends(get_websites_repo),
):
    entity = repo.get_required(ctx, make_key(_require_id(id)))
    return entity.model_dump()


@router.put("/{id}")
def update_entity(
    id: str,
    entity: Website,
    ctx: OpContext = Depends(get_op_context),
    repo: Repository[Website] = Depends(get_websites_repo),
):
    wid = _require_id(id)
    if entity.pk and entity.pk != wid:
        msg = ERR_PRIMARY_KEY_MISMATCH % (entity.pk, wid)
        raise new_problem(400, msg, detail=msg)

    entity.pk = wid
    repo.update(ctx, entity)
    return entity.model_dump()


@router.delete("/{id}", status_code=204)
def delete_entity(
    id: str,
    ctx: OpContext = Depends(get_op_context),
    repo: Repository[Website] = Depends(get_websites_repo),
):
    repo.delete(ctx, make_key(_require_id(id)))
    return Response(status_code=204)
