from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_database


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", summary="헬스 체크")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready", summary="MongoDB 연결 확인")
def ready(db: Database = Depends(get_database)) -> dict[str, str]:
    try:
        db.command("ping")
    except PyMongoError as exc:
        logger.warning("readiness ping failed: %s", exc)
        raise HTTPException(status_code=503, detail="mongo unavailable") from exc
    return {"status": "ready"}
