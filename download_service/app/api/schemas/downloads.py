from __future__ import annotations

from pydantic import BaseModel, Field

from common.types.datetime import UtcDateTime

from ...models.account import UserAccount
from ...models.entitlement import DownloadSource, DownloadStatus
from ...models.purchase import PurchaseBatch


class AccountResponse(BaseModel):
    """다운로드 계정 정보."""

    user_id: str
    free_downloads_remaining: int
    download_count: int
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, account: UserAccount) -> "AccountResponse":
        return cls(
            user_id=account.user_id,
            free_downloads_remaining=account.free_downloads_remaining,
            download_count=account.download_count,
            created_at=account.created_at,
        )


class DownloadStatusResponse(BaseModel):
    """다운로드 잔액 스냅샷."""

    free_downloads_remaining: int
    purchased_total: int
    purchased_used: int
    purchased_remaining: int
    download_count: int
    downloads_remaining: int
    is_free: bool
    has_downloads: bool

    @classmethod
    def from_domain(cls, status: DownloadStatus) -> "DownloadStatusResponse":
        return cls.model_validate(status.model_dump())


class ConsumeResponse(BaseModel):
    """다운로드 1회 소비 성공 결과."""

    allowed: bool = True
    source: DownloadSource
    purchase_id: str | None = None


class RecordPurchaseRequest(BaseModel):
    """결제 완료 후 구매 배치 기록 요청."""

    quantity: int = Field(ge=1)
    payment_reference: str | None = Field(default=None, max_length=200)


class PurchaseResponse(BaseModel):
    """구매 배치 정보."""

    id: str | None
    quantity: int
    used_quantity: int
    remaining_quantity: int
    payment_reference: str | None
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, batch: PurchaseBatch) -> "PurchaseResponse":
        return cls(
            id=batch.id,
            quantity=batch.quantity,
            used_quantity=batch.used_quantity,
            remaining_quantity=batch.remaining_quantity,
            payment_reference=batch.payment_reference,
            created_at=batch.created_at,
        )
