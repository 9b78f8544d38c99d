# This project was developed with assistance from AI tools.
"""Liveness and database readiness."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from rpc_db import DatabaseService, get_db_service

router = APIRouter()


@router.get("/")
async def health(db: DatabaseService = Depends(get_db_service)) -> JSONResponse:
    """200 when the database answers, 503 otherwise."""
    database_ok = await db.health_check()
    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "healthy" if database_ok else "degraded",
            "database": "ok" if database_ok else "unavailable",
        },
    )
