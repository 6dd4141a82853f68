"""다운로드 계정 도메인 모델.

profiles 컬렉션의 다운로드 관련 필드만 다룬다. 무료 다운로드 잔여 횟수와
누적 다운로드 횟수를 가지며, 누적 횟수는 표시용 비정규화 카운터이다.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserAccount(BaseModel):
    """유저별 다운로드 계정 도메인 모델."""

    id: str | None = None
    user_id: str
    free_downloads_remaining: int = Field(default=0, ge=0)
    download_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime
