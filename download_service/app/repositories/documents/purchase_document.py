"""document_purchases 컬렉션 도큐먼트."""

from __future__ import annotations

from pydantic import field_validator

from common.mongo.types import (
    MISSING_TIMESTAMP,
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.purchase import PurchaseBatch


class PurchaseDocument(BaseDocument):
    """MongoDB document_purchases 컬렉션 도큐먼트 모델.

    결제 쪽에서 직접 넣은 레코드는 수량이 null 이거나 타임스탬프가 없을 수 있어
    0 / MISSING_TIMESTAMP 로 받는다.
    """

    user_id: str
    quantity: int = 0
    used_quantity: int = 0
    remaining_quantity: int = 0
    payment_reference: str | None = None
    created_at: MongoDateTime = MISSING_TIMESTAMP
    updated_at: MongoDateTime = MISSING_TIMESTAMP

    @field_validator("quantity", "used_quantity", "remaining_quantity", mode="before")
    @classmethod
    def _null_as_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _null_as_missing(cls, value: object) -> object:
        return MISSING_TIMESTAMP if value is None else value

    @classmethod
    def from_domain(cls, batch: PurchaseBatch) -> "PurchaseDocument":
        data = build_document_data_from_domain(batch)
        return cls.model_validate(data)

    def to_domain(self) -> PurchaseBatch:
        return PurchaseBatch(
            id=from_object_id(self.id),
            user_id=self.user_id,
            quantity=self.quantity,
            used_quantity=self.used_quantity,
            remaining_quantity=self.remaining_quantity,
            payment_reference=self.payment_reference,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
