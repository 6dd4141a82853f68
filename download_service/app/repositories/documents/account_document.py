"""profiles 컬렉션 도큐먼트."""

from __future__ import annotations

from pydantic import field_validator

from common.mongo.types import (
    MISSING_TIMESTAMP,
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.account import UserAccount


class AccountDocument(BaseDocument):
    """MongoDB profiles 컬렉션 도큐먼트 모델 (다운로드 관련 필드만).

    profiles 는 가입 플로우가 먼저 만들기 때문에 카운터가 null 이거나
    타임스탬프가 없을 수 있다. 이 경우 0 / MISSING_TIMESTAMP 로 받는다.
    """

    user_id: str
    free_downloads_remaining: int = 0
    download_count: int = 0
    created_at: MongoDateTime = MISSING_TIMESTAMP
    updated_at: MongoDateTime = MISSING_TIMESTAMP

    @field_validator("free_downloads_remaining", "download_count", mode="before")
    @classmethod
    def _null_as_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _null_as_missing(cls, value: object) -> object:
        return MISSING_TIMESTAMP if value is None else value

    @classmethod
    def from_domain(cls, account: UserAccount) -> "AccountDocument":
        data = build_document_data_from_domain(account)
        return cls.model_validate(data)

    def to_domain(self) -> UserAccount:
        return UserAccount(
            id=from_object_id(self.id),
            user_id=self.user_id,
            # 손상된 음수 값은 0 으로 본다.
            free_downloads_remaining=max(self.free_downloads_remaining, 0),
            download_count=max(self.download_count, 0),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
