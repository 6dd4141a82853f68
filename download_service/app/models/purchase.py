"""구매 배치 도메인 모델.

구매 1건이 다운로드 크레딧 한 묶음이 된다. 배치마다 사용/잔여 수량을 따로 추적하며,
소비 시 생성 시각이 가장 오래된 배치부터 차감한다(FIFO).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PurchaseBatch(BaseModel):
    """구매 배치 도메인 모델."""

    id: str | None = None
    user_id: str
    quantity: int  # 최초 구매 수량 (불변)
    used_quantity: int = 0
    remaining_quantity: int = 0
    payment_reference: str | None = None  # 결제 세션/주문 ID
    created_at: datetime
    updated_at: datetime

    @property
    def has_remaining(self) -> bool:
        # 손상된 음수 잔여량은 남은 것으로 보지 않는다.
        return self.remaining_quantity > 0
