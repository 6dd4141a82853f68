from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def ensure_utc_datetime(value: Any) -> Any:
    """datetime 값을 UTC 기준으로 정규화한다.

    - tzinfo 가 없으면 UTC 로 간주한다 (Mongo 는 naive UTC 로 돌려줄 수 있다).
    - ISO8601 문자열이면 파싱 후 같은 규칙을 적용한다.
    """

    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# 타임스탬프 없이 들어온 레코드의 기본값.
# Mongo 오름차순 정렬에서 null 이 맨 앞이므로 가장 오래된 것으로 본다.
MISSING_TIMESTAMP = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_object_id(value: Any) -> ObjectId:
    """str / ObjectId 를 MongoDB ObjectId 로 변환한다."""

    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise TypeError("ObjectId cannot be None")
    return ObjectId(str(value))


def from_object_id(value: Optional[ObjectId]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


PyObjectId = Annotated[ObjectId, BeforeValidator(to_object_id)]
MongoDateTime = Annotated[datetime, BeforeValidator(ensure_utc_datetime)]


class BaseDocument(BaseModel):
    """MongoDB 도큐먼트 공통 베이스 모델.

    - ObjectId 같은 임의 타입을 허용한다.
    - id 필드는 Mongo 의 _id 로 직렬화된다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: MongoDateTime
    updated_at: MongoDateTime

    def to_mongo_record(self) -> dict[str, Any]:
        """insert 용 레코드. _id=None 은 제거해 Mongo 가 ObjectId 를 생성하도록 한다."""

        return self.model_dump(by_alias=True, exclude_none=True)


def build_document_data_from_domain(domain_model: BaseModel) -> dict[str, Any]:
    """도메인 모델을 도큐먼트 검증용 dict 로 변환한다.

    도메인 모델의 id 는 문자열이므로, 비어 있으면 제거해 _id 가 새로 생성되게 한다.
    """

    data = domain_model.model_dump(by_alias=True)
    if data.get("id") is None:
        data.pop("id", None)
    return data
