from __future__ import annotations

from datetime import datetime, timezone

from bson import ObjectId

from common.mongo.types import MISSING_TIMESTAMP

from download_service.app.models.purchase import PurchaseBatch
from download_service.app.repositories.documents.account_document import (
    AccountDocument,
)
from download_service.app.repositories.documents.purchase_document import (
    PurchaseDocument,
)


def test_purchase_document_treats_null_counters_as_zero() -> None:
    oid = ObjectId()
    raw = {
        "_id": oid,
        "user_id": "user-001",
        "quantity": 3,
        "used_quantity": None,
        "remaining_quantity": None,
        "created_at": datetime(2025, 1, 1, 9, 0),
        "updated_at": datetime(2025, 1, 1, 9, 0),
    }

    batch = PurchaseDocument.model_validate(raw).to_domain()

    assert batch.id == str(oid)
    assert batch.used_quantity == 0
    assert batch.remaining_quantity == 0
    assert batch.payment_reference is None
    assert batch.created_at.tzinfo == timezone.utc


def test_new_purchase_record_omits_empty_id_and_reference() -> None:
    now = datetime.now(timezone.utc)
    batch = PurchaseBatch(
        user_id="user-001",
        quantity=2,
        remaining_quantity=2,
        created_at=now,
        updated_at=now,
    )

    record = PurchaseDocument.from_domain(batch).to_mongo_record()

    assert "_id" not in record
    assert "payment_reference" not in record
    assert record["remaining_quantity"] == 2


def test_account_document_clamps_negative_counters() -> None:
    raw = {
        "_id": ObjectId(),
        "user_id": "user-001",
        "free_downloads_remaining": -1,
        "download_count": 4,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }

    account = AccountDocument.model_validate(raw).to_domain()

    assert account.free_downloads_remaining == 0
    assert account.download_count == 4


def test_account_document_tolerates_signup_written_profile() -> None:
    raw = {
        "_id": ObjectId(),
        "user_id": "user-001",
        "free_downloads_remaining": None,
        "download_count": None,
        "created_at": None,
    }

    account = AccountDocument.model_validate(raw).to_domain()

    assert account.free_downloads_remaining == 0
    assert account.download_count == 0
    assert account.created_at == MISSING_TIMESTAMP
    assert account.updated_at == MISSING_TIMESTAMP


def test_purchase_document_without_timestamps_or_quantity() -> None:
    raw = {"_id": ObjectId(), "user_id": "user-001", "remaining_quantity": 1}

    batch = PurchaseDocument.model_validate(raw).to_domain()

    assert batch.quantity == 0
    assert batch.remaining_quantity == 1
    assert batch.created_at == MISSING_TIMESTAMP
