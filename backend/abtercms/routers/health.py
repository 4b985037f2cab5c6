from __future__ import annotations

from fastapi import APIRouter

from ..settings import get_settings

router = APIRouter()


@router.get("/", tags=["health"])
def health():
    settings = get_settings()
    return {
        "message": "abtercms websites API",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.normalized_environment,
        "dynamodb": "configured" if settings.ddb_table_name else "missing",
        "endpoints": [
            "GET /websites",
            "POST /websites",
            "GET /websites/{id}",
            "PUT /websites/{id}",
            "DELETE /websites/{id}",
        ],
    }
