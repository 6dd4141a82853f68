"""다운로드 계정 레포지토리 구현체.

profiles 컬렉션의 무료 잔여/누적 카운터를 다룬다. 차감은 모두 조건부
단일 도큐먼트 업데이트로 처리해 동시 요청에서도 음수가 되지 않는다.
"""

from __future__ import annotations

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.client import PROFILES_COLLECTION
from common.types.datetime import utc_now

from .documents.account_document import AccountDocument
from .interfaces import AccountRepositoryInterface
from ..models.account import UserAccount


class AccountRepository(AccountRepositoryInterface):
    """profiles 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[PROFILES_COLLECTION]

    @staticmethod
    def _from_document(doc: dict) -> UserAccount:
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_user_id(self, user_id: str) -> UserAccount | None:
        doc = self._col.find_one({"user_id": user_id})
        if not doc:
            return None
        return self._from_document(doc)

    def create(self, user_id: str, free_downloads: int) -> UserAccount:
        now = utc_now()
        try:
            doc = self._col.find_one_and_update(
                {"user_id": user_id},
                {
                    "$setOnInsert": {
                        "free_downloads_remaining": free_downloads,
                        "download_count": 0,
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # 동시 upsert 경합에서 진 경우: 먼저 생성된 계정을 사용한다.
            doc = self._col.find_one({"user_id": user_id})
        if not doc:
            raise RuntimeError(f"account upsert returned nothing (user_id={user_id})")
        return self._from_document(doc)

    def _fill_null_download_count(self, user_id: str) -> None:
        # null 필드에는 $inc 가 실패하므로 먼저 0 으로 채운다.
        self._col.update_one(
            {"user_id": user_id, "download_count": None},
            {"$set": {"download_count": 0}},
        )

    def use_free_download(self, user_id: str) -> UserAccount | None:
        now = utc_now()
        self._fill_null_download_count(user_id)
        doc = self._col.find_one_and_update(
            {"user_id": user_id, "free_downloads_remaining": {"$gt": 0}},
            {
                "$inc": {"free_downloads_remaining": -1, "download_count": 1},
                "$set": {"updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def increment_download_count(self, user_id: str) -> bool:
        now = utc_now()
        self._fill_null_download_count(user_id)
        result = self._col.update_one(
            {"user_id": user_id},
            {"$inc": {"download_count": 1}, "$set": {"updated_at": now}},
        )
        return result.matched_count > 0
