"""다운로드 권한 API 라우터.

UI 는 다운로드 직전에 consume 을 호출하고, 잔액 표시는 status 로 조회한다.
결제 콜백은 purchases 로 구매 배치를 기록한다.
"""

from __future__ import annotations

from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.common import PaginatedResponse
from ..schemas.downloads import (
    AccountResponse,
    ConsumeResponse,
    DownloadStatusResponse,
    PurchaseResponse,
    RecordPurchaseRequest,
)
from ...models.entitlement import ConsumeResult, DenialReason
from ...services.entitlement_service import (
    EntitlementService,
    get_entitlement_service,
)


router = APIRouter(prefix="/downloads", tags=["downloads"])


DENIAL_STATUS_CODES: dict[DenialReason, int] = {
    DenialReason.NO_ENTITLEMENT: status.HTTP_402_PAYMENT_REQUIRED,
    DenialReason.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenialReason.STORAGE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _raise_denied(result: ConsumeResult) -> NoReturn:
    reason = result.reason or DenialReason.STORAGE_FAILURE
    detail: dict[str, str] = {
        "code": reason.value,
        "message": result.message or "",
    }
    if result.redirect_url:
        detail["redirect_url"] = result.redirect_url
    raise HTTPException(status_code=DENIAL_STATUS_CODES[reason], detail=detail)


@router.post("/{user_id}/account", summary="다운로드 계정 생성 (가입 시)")
def open_account(
    user_id: str,
    service: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> AccountResponse:
    account = service.open_account(user_id)
    return AccountResponse.from_domain(account)


@router.get("/{user_id}/status", summary="다운로드 잔액 조회")
def get_status(
    user_id: str,
    service: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> DownloadStatusResponse:
    return DownloadStatusResponse.from_domain(service.status(user_id))


@router.post("/{user_id}/consume", summary="다운로드 1회 소비")
def consume_download(
    user_id: str,
    service: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> ConsumeResponse:
    """다운로드 1회 소비. 잔여 없음 402, 계정 없음 404, 저장소 오류 503."""
    result = service.consume(user_id)
    if not result.allowed or result.source is None:
        _raise_denied(result)
    return ConsumeResponse(source=result.source, purchase_id=result.purchase_id)


@router.post(
    "/{user_id}/purchases",
    status_code=status.HTTP_201_CREATED,
    summary="구매 배치 기록 (결제 완료 콜백)",
)
def record_purchase(
    user_id: str,
    req: RecordPurchaseRequest,
    service: Annotated[EntitlementService, Depends(get_entitlement_service)],
) -> PurchaseResponse:
    batch = service.record_purchase(
        user_id, req.quantity, payment_reference=req.payment_reference
    )
    return PurchaseResponse.from_domain(batch)


@router.get("/{user_id}/purchases", summary="구매 이력 조회")
def list_purchases(
    user_id: str,
    service: Annotated[EntitlementService, Depends(get_entitlement_service)],
    page: int = Query(1, ge=1, description="조회할 페이지 (1부터 시작)"),
    page_size: int = Query(
        20,
        ge=1,
        le=100,
        description="페이지당 아이템 개수 (1~100)",
    ),
) -> PaginatedResponse[PurchaseResponse]:
    items, total = service.list_purchases(user_id, page, page_size)
    return PaginatedResponse(
        items=[PurchaseResponse.from_domain(b) for b in items],
        total=total,
        page=page,
        page_size=page_size,
    )
