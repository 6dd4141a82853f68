"""다운로드 권한 서비스.

무료 잔여 횟수와 구매 배치(FIFO) 두 풀에서 다운로드 1회를 소비하고,
잔액 스냅샷을 조회한다. 저장소 오류는 밖으로 던지지 않고 거절 결과로 바꾼다.
"""

from __future__ import annotations

import logging
from typing import cast

from fastapi import Depends
from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_database

from ..config import DownloadsConfig, get_downloads_config
from ..exceptions import InvalidPurchaseError
from ..models.account import UserAccount
from ..models.entitlement import (
    MESSAGE_ACCOUNT_NOT_FOUND,
    MESSAGE_COUNT_UPDATE_FAILED,
    MESSAGE_FREE_UPDATE_FAILED,
    MESSAGE_NO_DOWNLOADS,
    MESSAGE_PURCHASE_CHECK_FAILED,
    MESSAGE_PURCHASE_UPDATE_FAILED,
    ConsumeResult,
    DenialReason,
    DownloadSource,
    DownloadStatus,
)
from ..models.purchase import PurchaseBatch
from ..repositories.account_repository import AccountRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    PurchaseRepositoryInterface,
)
from ..repositories.purchase_repository import PurchaseRepository


logger = logging.getLogger(__name__)

# 저장소 호출 실패로 보는 예외. 손상된 레코드는 매핑 단계에서 ValidationError 가 난다.
STORAGE_ERRORS = (PyMongoError, ValidationError)


def select_oldest_available(batches: list[PurchaseBatch]) -> PurchaseBatch | None:
    """잔여가 남은 배치 중 가장 먼저 생성된 배치를 고른다.

    레포지토리가 이미 정렬해서 주더라도 여기서 한 번 더 정렬한다.
    """

    ordered = sorted(
        (b for b in batches if b.id is not None),
        key=lambda b: (b.created_at, b.id),
    )
    for batch in ordered:
        if batch.has_remaining:
            return batch
    return None


class EntitlementService:
    """다운로드 권한 소비/조회 비즈니스 로직."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        purchase_repo: PurchaseRepositoryInterface,
        config: DownloadsConfig | None = None,
    ) -> None:
        self._account_repo = account_repo
        self._purchase_repo = purchase_repo
        self._config = config or DownloadsConfig()

    def consume(self, user_id: str) -> ConsumeResult:
        """다운로드 1회 소비.

        1. 무료 잔여가 있으면 무료 풀에서 1 차감 (download_count 도 같은 업데이트로 +1)
        2. 없으면 가장 오래된 잔여 배치에서 1 차감 후 download_count +1
        3. 둘 다 없으면 거절
        """
        try:
            account = self._account_repo.find_by_user_id(user_id)
        except STORAGE_ERRORS:
            logger.exception("failed to load account user_id=%s", user_id)
            return ConsumeResult.denied(
                DenialReason.STORAGE_FAILURE, MESSAGE_ACCOUNT_NOT_FOUND
            )

        if account is None:
            logger.info("download denied: account not found user_id=%s", user_id)
            return ConsumeResult.denied(
                DenialReason.ACCOUNT_NOT_FOUND, MESSAGE_ACCOUNT_NOT_FOUND
            )

        if account.free_downloads_remaining > 0:
            try:
                updated = self._account_repo.use_free_download(user_id)
            except STORAGE_ERRORS:
                logger.exception("failed to use free download user_id=%s", user_id)
                return ConsumeResult.denied(
                    DenialReason.STORAGE_FAILURE, MESSAGE_FREE_UPDATE_FAILED
                )

            if updated is not None:
                logger.info(
                    "free download granted user_id=%s free_remaining=%d download_count=%d",
                    user_id,
                    updated.free_downloads_remaining,
                    updated.download_count,
                )
                return ConsumeResult.granted(DownloadSource.FREE)

            # 읽은 뒤 다른 요청이 마지막 무료 횟수를 가져갔다.
            logger.info(
                "free allowance drained concurrently, falling back to purchases user_id=%s",
                user_id,
            )

        return self._consume_purchase(user_id)

    def _consume_purchase(self, user_id: str) -> ConsumeResult:
        used: PurchaseBatch | None = None

        for attempt in range(1, self._config.consume_max_attempts + 1):
            try:
                batches = self._purchase_repo.list_by_user(user_id)
            except STORAGE_ERRORS:
                logger.exception("failed to list purchases user_id=%s", user_id)
                return ConsumeResult.denied(
                    DenialReason.STORAGE_FAILURE, MESSAGE_PURCHASE_CHECK_FAILED
                )

            batch = select_oldest_available(batches)
            if batch is None:
                return self._deny_no_downloads(user_id)

            batch_id = cast(str, batch.id)
            try:
                used = self._purchase_repo.use_one(batch_id)
            except STORAGE_ERRORS:
                logger.exception(
                    "failed to use purchase user_id=%s purchase_id=%s",
                    user_id,
                    batch.id,
                )
                return ConsumeResult.denied(
                    DenialReason.STORAGE_FAILURE, MESSAGE_PURCHASE_UPDATE_FAILED
                )

            if used is not None:
                break

            logger.info(
                "purchase drained concurrently user_id=%s purchase_id=%s attempt=%d",
                user_id,
                batch.id,
                attempt,
            )

        if used is None:
            return self._deny_no_downloads(user_id)

        # 배치 차감은 되돌리지 않는다. download_count 는 표시용 카운터라 어긋날 수 있다.
        try:
            counted = self._account_repo.increment_download_count(user_id)
        except STORAGE_ERRORS:
            logger.exception(
                "failed to increment download_count user_id=%s", user_id
            )
            counted = False

        if not counted:
            logger.warning(
                "download_count drift: purchase debited without count user_id=%s purchase_id=%s",
                user_id,
                used.id,
            )
            return ConsumeResult.denied(
                DenialReason.STORAGE_FAILURE, MESSAGE_COUNT_UPDATE_FAILED
            )

        logger.info(
            "purchased download granted user_id=%s purchase_id=%s remaining=%d",
            user_id,
            used.id,
            used.remaining_quantity,
        )
        return ConsumeResult.granted(DownloadSource.PURCHASE, purchase_id=used.id)

    def _deny_no_downloads(self, user_id: str) -> ConsumeResult:
        logger.info("download denied: no downloads remaining user_id=%s", user_id)
        return ConsumeResult.denied(
            DenialReason.NO_ENTITLEMENT,
            MESSAGE_NO_DOWNLOADS,
            redirect_url=self._config.pricing_url,
        )

    def status(self, user_id: str) -> DownloadStatus:
        """잔액 스냅샷 조회 (변경 없음). 계정이 없거나 조회 실패 시 0 으로 채운다."""
        try:
            account = self._account_repo.find_by_user_id(user_id)
            if account is None:
                return DownloadStatus.empty()
            batches = self._purchase_repo.list_by_user(user_id)
        except STORAGE_ERRORS:
            logger.exception("failed to load download status user_id=%s", user_id)
            return DownloadStatus.empty()

        purchased_total = 0
        purchased_used = 0
        purchased_remaining = 0
        for batch in batches:
            purchased_total += batch.quantity
            purchased_used += batch.used_quantity
            purchased_remaining += max(batch.remaining_quantity, 0)

        free_remaining = account.free_downloads_remaining
        is_free = free_remaining > 0

        return DownloadStatus(
            free_downloads_remaining=free_remaining,
            purchased_total=purchased_total,
            purchased_used=purchased_used,
            purchased_remaining=purchased_remaining,
            download_count=account.download_count,
            downloads_remaining=1 if is_free else purchased_remaining,
            is_free=is_free,
            has_downloads=is_free or purchased_remaining > 0,
        )

    def open_account(self, user_id: str) -> UserAccount:
        """가입 시 계정 생성 (무료 다운로드 지급). 이미 있으면 그대로 반환."""
        account = self._account_repo.create(
            user_id, self._config.free_downloads_on_signup
        )
        logger.info(
            "account opened user_id=%s free_remaining=%d",
            user_id,
            account.free_downloads_remaining,
        )
        return account

    def record_purchase(
        self, user_id: str, quantity: int, payment_reference: str | None = None
    ) -> PurchaseBatch:
        """결제 완료된 구매를 배치로 기록한다.

        같은 payment_reference 가 다시 들어오면 새로 만들지 않고 기존 배치를 반환한다.
        """
        if quantity < 1:
            raise InvalidPurchaseError(
                f"purchase quantity must be at least 1 (got {quantity})"
            )

        reference = (payment_reference or "").strip() or None
        if reference is not None:
            existing = self._purchase_repo.find_by_payment_reference(
                user_id, reference
            )
            if existing is not None:
                logger.info(
                    "purchase already recorded user_id=%s purchase_id=%s reference=%s",
                    user_id,
                    existing.id,
                    reference,
                )
                return existing

        batch = self._purchase_repo.create(user_id, quantity, reference)
        logger.info(
            "purchase recorded user_id=%s purchase_id=%s quantity=%d",
            user_id,
            batch.id,
            quantity,
        )
        return batch

    def list_purchases(
        self, user_id: str, page: int = 1, page_size: int = 20
    ) -> tuple[list[PurchaseBatch], int]:
        """구매 이력 조회 (최신순)."""
        return self._purchase_repo.list_page(user_id, page, page_size)


def get_account_repository(
    db: Database = Depends(get_database),
) -> AccountRepositoryInterface:
    """FastAPI DI용 AccountRepository 팩토리."""

    return AccountRepository(db)


def get_purchase_repository(
    db: Database = Depends(get_database),
) -> PurchaseRepositoryInterface:
    """FastAPI DI용 PurchaseRepository 팩토리."""

    return PurchaseRepository(db)


def get_entitlement_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    purchase_repo: PurchaseRepositoryInterface = Depends(get_purchase_repository),
) -> EntitlementService:
    """FastAPI DI용 EntitlementService 팩토리."""

    return EntitlementService(
        account_repo=account_repo,
        purchase_repo=purchase_repo,
        config=get_downloads_config(),
    )
