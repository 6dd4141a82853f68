from __future__ import annotations

from typing import Protocol

from ..models.account import UserAccount
from ..models.purchase import PurchaseBatch


class AccountRepositoryInterface(Protocol):
    """AccountRepository가 따라야 할 최소한의 계약.

    - 무료 다운로드 차감은 반드시 조건부 단일 업데이트(잔여 > 0)로 수행한다.
    - Service 레이어는 이 인터페이스에만 의존한다.
    """

    def find_by_user_id(
        self, user_id: str
    ) -> UserAccount | None:  # pragma: no cover - Protocol
        ...

    def create(
        self, user_id: str, free_downloads: int
    ) -> UserAccount:  # pragma: no cover - Protocol
        """계정이 없으면 생성하고, 이미 있으면 기존 계정을 그대로 반환한다."""
        ...

    def use_free_download(
        self, user_id: str
    ) -> UserAccount | None:  # pragma: no cover - Protocol
        """무료 잔여가 1 이상일 때만 1 차감 + download_count 1 증가.

        조건이 맞지 않으면 None 을 반환한다.
        """
        ...

    def increment_download_count(
        self, user_id: str
    ) -> bool:  # pragma: no cover - Protocol
        ...


class PurchaseRepositoryInterface(Protocol):
    """PurchaseRepository가 따라야 할 최소한의 계약.

    - list_by_user 는 생성 시각 오름차순(FIFO)으로 반환한다.
    - use_one 은 잔여 > 0 인 경우에만 잔여 -1, 사용 +1 을 한 번에 반영한다.
    """

    def list_by_user(
        self, user_id: str
    ) -> list[PurchaseBatch]:  # pragma: no cover - Protocol
        ...

    def use_one(
        self, purchase_id: str
    ) -> PurchaseBatch | None:  # pragma: no cover - Protocol
        ...

    def create(
        self, user_id: str, quantity: int, payment_reference: str | None = None
    ) -> PurchaseBatch:  # pragma: no cover - Protocol
        ...

    def find_by_payment_reference(
        self, user_id: str, payment_reference: str
    ) -> PurchaseBatch | None:  # pragma: no cover - Protocol
        ...

    def list_page(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[PurchaseBatch], int]:  # pragma: no cover - Protocol
        ...
