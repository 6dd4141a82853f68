"""EntitlementService 테스트용 인메모리 레포지토리.

Mongo 구현과 같은 조건부 업데이트 규칙(잔여 > 0 일 때만 차감)을 따르고,
저장소 오류와 동시 요청 경합을 흉내낼 수 있다.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pymongo.errors import PyMongoError

from download_service.app.models.account import UserAccount
from download_service.app.models.purchase import PurchaseBatch


BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def build_account(
    user_id: str = "user-001", *, free: int = 0, download_count: int = 0
) -> UserAccount:
    return UserAccount(
        id=f"acc-{user_id}",
        user_id=user_id,
        free_downloads_remaining=free,
        download_count=download_count,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


def build_batch(
    purchase_id: str,
    *,
    user_id: str = "user-001",
    quantity: int = 5,
    used: int = 0,
    remaining: int | None = None,
    created_minutes: int = 0,
    payment_reference: str | None = None,
) -> PurchaseBatch:
    created_at = BASE_TIME + timedelta(minutes=created_minutes)
    return PurchaseBatch(
        id=purchase_id,
        user_id=user_id,
        quantity=quantity,
        used_quantity=used,
        remaining_quantity=quantity - used if remaining is None else remaining,
        payment_reference=payment_reference,
        created_at=created_at,
        updated_at=created_at,
    )


class FakeAccountRepository:
    def __init__(self, *accounts: UserAccount) -> None:
        self.accounts: dict[str, UserAccount] = {a.user_id: a for a in accounts}
        self.fail_find = False
        self.fail_use_free = False
        self.fail_increment = False
        # True 면 use_free_download 직전에 다른 요청이 무료 횟수를 모두 써버린 것처럼 동작
        self.drain_free_before_use = False
        self.create_calls: list[tuple[str, int]] = []
        self.increment_calls: list[str] = []

    def find_by_user_id(self, user_id: str) -> UserAccount | None:
        if self.fail_find:
            raise PyMongoError("find failed")
        account = self.accounts.get(user_id)
        return account.model_copy() if account else None

    def create(self, user_id: str, free_downloads: int) -> UserAccount:
        self.create_calls.append((user_id, free_downloads))
        if user_id not in self.accounts:
            self.accounts[user_id] = build_account(user_id, free=free_downloads)
        return self.accounts[user_id].model_copy()

    def use_free_download(self, user_id: str) -> UserAccount | None:
        if self.fail_use_free:
            raise PyMongoError("update failed")
        account = self.accounts.get(user_id)
        if account is None:
            return None
        if self.drain_free_before_use:
            account.free_downloads_remaining = 0
        if account.free_downloads_remaining <= 0:
            return None
        account.free_downloads_remaining -= 1
        account.download_count += 1
        return account.model_copy()

    def increment_download_count(self, user_id: str) -> bool:
        self.increment_calls.append(user_id)
        if self.fail_increment:
            raise PyMongoError("increment failed")
        account = self.accounts.get(user_id)
        if account is None:
            return False
        account.download_count += 1
        return True


class FakePurchaseRepository:
    def __init__(self, *batches: PurchaseBatch) -> None:
        # 삽입 순서 그대로 반환한다 (정렬은 서비스 책임인지 검증하기 위함).
        self.batches: list[PurchaseBatch] = list(batches)
        self.fail_list = False
        self.fail_use = False
        # use_one 호출 직전에 해당 배치를 다른 요청이 비워버리는 횟수
        self.drain_before_use = 0
        self.use_calls: list[str] = []
        self._next_id = 1

    def get(self, purchase_id: str) -> PurchaseBatch:
        return next(b for b in self.batches if b.id == purchase_id)

    def list_by_user(self, user_id: str) -> list[PurchaseBatch]:
        if self.fail_list:
            raise PyMongoError("list failed")
        return [b.model_copy() for b in self.batches if b.user_id == user_id]

    def use_one(self, purchase_id: str) -> PurchaseBatch | None:
        self.use_calls.append(purchase_id)
        if self.fail_use:
            raise PyMongoError("update failed")
        batch = self.get(purchase_id)
        if self.drain_before_use > 0:
            self.drain_before_use -= 1
            batch.used_quantity += batch.remaining_quantity
            batch.remaining_quantity = 0
        if batch.remaining_quantity <= 0:
            return None
        batch.remaining_quantity -= 1
        batch.used_quantity += 1
        return batch.model_copy()

    def create(
        self, user_id: str, quantity: int, payment_reference: str | None = None
    ) -> PurchaseBatch:
        batch = build_batch(
            f"new-{self._next_id}",
            user_id=user_id,
            quantity=quantity,
            created_minutes=1000 + self._next_id,
            payment_reference=payment_reference,
        )
        self._next_id += 1
        self.batches.append(batch)
        return batch.model_copy()

    def find_by_payment_reference(
        self, user_id: str, payment_reference: str
    ) -> PurchaseBatch | None:
        for batch in self.batches:
            if (
                batch.user_id == user_id
                and batch.payment_reference == payment_reference
            ):
                return batch.model_copy()
        return None

    def list_page(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[PurchaseBatch], int]:
        owned = [b for b in self.batches if b.user_id == user_id]
        owned.sort(key=lambda b: b.created_at, reverse=True)
        start = (max(page, 1) - 1) * page_size
        return [b.model_copy() for b in owned[start : start + page_size]], len(owned)
