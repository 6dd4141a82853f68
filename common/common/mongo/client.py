from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from .config import (
    get_mongo_db_name,
    get_mongo_uri,
    get_server_selection_timeout_ms,
)


logger = logging.getLogger(__name__)


PROFILES_COLLECTION = "profiles"
PURCHASES_COLLECTION = "document_purchases"

_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽고 ping 으로 연결을 검증한다.
    - MONGO_DB_NAME 이 없고 URI 에도 기본 DB 가 없으면 에러를 발생시킨다.
    - profiles / document_purchases 인덱스를 최초 1회 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        client = MongoClient(
            get_mongo_uri(),
            serverSelectionTimeoutMS=get_server_selection_timeout_ms(),
            tz_aware=True,
        )

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        db_name = get_mongo_db_name()
        try:
            db = client[db_name] if db_name else client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        try:
            ensure_indexes(db)
        except Exception as exc:  # noqa: BLE001
            client.close()
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        _client = client
        _db = db

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다. FastAPI Depends 에서도 사용한다."""

    if _db is None:
        get_client()
    assert _db is not None  # get_client 가 실패했다면 예외가 이미 발생했어야 한다.
    return _db


def close_client() -> None:
    """애플리케이션 종료 시 연결을 정리한다."""

    global _client, _db

    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        _db = None


def ensure_indexes(db: Database) -> None:
    """다운로드 원장에 필요한 인덱스를 생성한다. 중복 호출해도 idempotent 하다."""

    profiles = db[PROFILES_COLLECTION]
    profiles.create_index(
        [("user_id", ASCENDING)],
        name="uniq_user_id",
        unique=True,
    )

    purchases = db[PURCHASES_COLLECTION]

    # FIFO 소비: 유저별 생성 시각 오름차순
    purchases.create_index(
        [("user_id", ASCENDING), ("created_at", ASCENDING), ("_id", ASCENDING)],
        name="idx_user_created_at",
    )

    # 구매 목록: 최신순
    purchases.create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_user_created_at_desc",
    )

    # 결제 콜백 재시도 시 같은 결제가 두 번 기록되지 않도록 한다.
    purchases.create_index(
        [("user_id", ASCENDING), ("payment_reference", ASCENDING)],
        name="uniq_user_payment_reference",
        unique=True,
        partialFilterExpression={"payment_reference": {"$type": "string"}},
    )
