"""구매 배치 레포지토리 구현체.

document_purchases 컬렉션을 생성 시각 오름차순(FIFO)으로 조회하고,
배치 단위 조건부 차감과 구매 기록/목록 조회를 지원한다.
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.mongo.client import PURCHASES_COLLECTION
from common.mongo.types import to_object_id
from common.types.datetime import utc_now

from .documents.purchase_document import PurchaseDocument
from .interfaces import PurchaseRepositoryInterface
from ..models.purchase import PurchaseBatch


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PurchaseRepository(PurchaseRepositoryInterface):
    """document_purchases 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database[PURCHASES_COLLECTION]

    @staticmethod
    def _from_document(doc: dict) -> PurchaseBatch:
        return PurchaseDocument.model_validate(doc).to_domain()

    def list_by_user(self, user_id: str) -> list[PurchaseBatch]:
        """유저의 전체 구매 배치 (FIFO: 오래된 순)."""
        cursor = self._col.find(
            {"user_id": user_id},
            sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
        )
        return [self._from_document(doc) for doc in cursor]

    def use_one(self, purchase_id: str) -> PurchaseBatch | None:
        """배치에서 1건 차감. 잔여가 없으면(경합 포함) None."""
        now = utc_now()
        object_id = to_object_id(purchase_id)
        # 결제 쪽에서 used_quantity 를 null 로 넣은 배치: $inc 전에 0 으로 채운다.
        self._col.update_one(
            {"_id": object_id, "used_quantity": None},
            {"$set": {"used_quantity": 0}},
        )
        doc = self._col.find_one_and_update(
            {"_id": object_id, "remaining_quantity": {"$gt": 0}},
            {
                "$inc": {"remaining_quantity": -1, "used_quantity": 1},
                "$set": {"updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return self._from_document(doc)

    def create(
        self, user_id: str, quantity: int, payment_reference: str | None = None
    ) -> PurchaseBatch:
        now = utc_now()
        batch = PurchaseBatch(
            user_id=user_id,
            quantity=quantity,
            used_quantity=0,
            remaining_quantity=quantity,
            payment_reference=payment_reference,
            created_at=now,
            updated_at=now,
        )
        payload = PurchaseDocument.from_domain(batch).to_mongo_record()
        try:
            result = self._col.insert_one(payload)
        except DuplicateKeyError:
            # 같은 결제가 동시에 두 번 들어온 경우: 먼저 기록된 배치를 반환한다.
            if payment_reference is None:
                raise
            existing = self.find_by_payment_reference(user_id, payment_reference)
            if existing is None:
                raise
            return existing
        payload["_id"] = result.inserted_id
        return self._from_document(payload)

    def find_by_payment_reference(
        self, user_id: str, payment_reference: str
    ) -> PurchaseBatch | None:
        doc = self._col.find_one(
            {"user_id": user_id, "payment_reference": payment_reference}
        )
        if not doc:
            return None
        return self._from_document(doc)

    def list_page(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[PurchaseBatch], int]:
        """구매 목록 조회 (최신순)."""
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > MAX_PAGE_SIZE:
            page_size = DEFAULT_PAGE_SIZE

        skip = (page - 1) * page_size

        total = self._col.count_documents({"user_id": user_id})
        cursor = self._col.find(
            {"user_id": user_id},
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
            skip=skip,
            limit=page_size,
        )
        return [self._from_document(doc) for doc in cursor], total
