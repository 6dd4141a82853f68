"""다운로드 권한 판정 결과 모델."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


MESSAGE_ACCOUNT_NOT_FOUND = "User profile not found."
MESSAGE_FREE_UPDATE_FAILED = "Failed to update free download."
MESSAGE_PURCHASE_CHECK_FAILED = "Failed to check purchases."
MESSAGE_PURCHASE_UPDATE_FAILED = "Failed to update purchase."
MESSAGE_COUNT_UPDATE_FAILED = "Failed to update download count."
MESSAGE_NO_DOWNLOADS = "No downloads remaining. Redirecting to pricing."


class DenialReason(str, Enum):
    ACCOUNT_NOT_FOUND = "account_not_found"
    STORAGE_FAILURE = "storage_failure"
    NO_ENTITLEMENT = "no_entitlement"


class DownloadSource(str, Enum):
    FREE = "free"
    PURCHASE = "purchase"


class ConsumeResult(BaseModel):
    """다운로드 1회 소비 결과.

    - 허용된 경우 어느 풀(free/purchase)에서 차감했는지 source 로 남긴다.
    - 거절된 경우 reason 과 화면에 그대로 노출할 수 있는 message 를 가진다.
    """

    allowed: bool
    message: str | None = None
    reason: DenialReason | None = None
    source: DownloadSource | None = None
    purchase_id: str | None = None
    redirect_url: str | None = None  # 잔여 없음일 때 이동할 가격 페이지

    @classmethod
    def granted(
        cls, source: DownloadSource, purchase_id: str | None = None
    ) -> "ConsumeResult":
        return cls(allowed=True, source=source, purchase_id=purchase_id)

    @classmethod
    def denied(
        cls,
        reason: DenialReason,
        message: str,
        redirect_url: str | None = None,
    ) -> "ConsumeResult":
        return cls(
            allowed=False, reason=reason, message=message, redirect_url=redirect_url
        )


class DownloadStatus(BaseModel):
    """유저 다운로드 잔액 스냅샷 (조회 전용)."""

    free_downloads_remaining: int = 0
    purchased_total: int = 0
    purchased_used: int = 0
    purchased_remaining: int = 0
    download_count: int = 0
    downloads_remaining: int = 0
    is_free: bool = False
    has_downloads: bool = False

    @classmethod
    def empty(cls) -> "DownloadStatus":
        return cls()
