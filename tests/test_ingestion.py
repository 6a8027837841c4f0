"""Tests for the upload -> extraction -> persistence pipeline."""

import base64
from datetime import date
from decimal import Decimal

import pytest

from database.models import Invoice, Project
from errors import (
    AiServiceError,
    FileProcessingError,
    FileTooLargeError,
    InvalidRequestError,
    ResourceNotFoundError,
)
from services.ingestion import InvoiceIngestionPipeline, is_supported_content_type

PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image body"


def invoice_count(db):
    return db.query(Invoice).count()


def test_successful_upload_persists_extracted_invoice(db, make_user, extractor):
    user = make_user()
    pipeline = InvoiceIngestionPipeline(db, extractor)

    response = pipeline.ingest(user.username, PNG_BYTES, "image/png", "scan.png")

    assert response.invoice_number == "R-2024-001"
    assert response.vendor == "ACME GmbH"
    assert response.amount == Decimal("199.99")
    assert response.invoice_date == date(2024, 3, 15)
    assert response.file_name == "scan.png"
    assert response.project_id is None

    stored = db.get(Invoice, response.id)
    assert stored.owner_id == user.id
    assert stored.image_data == PNG_BYTES
    assert stored.content_type == "image/png"
    assert stored.raw_extraction_text == extractor.response
    assert stored.uploaded_at is not None

    sent_image, mime_type = extractor.calls[0]
    assert base64.b64decode(sent_image) == PNG_BYTES
    assert mime_type == "image/png"


def test_upload_into_own_project(db, make_user, extractor):
    user = make_user()
    project = Project(owner_id=user.id, name="Renovation")
    db.add(project)
    db.commit()

    response = InvoiceIngestionPipeline(db, extractor).ingest(
        user.username, PNG_BYTES, "application/pdf", "bill.pdf", project_id=project.id
    )

    assert response.project_id == project.id
    assert response.project_name == "Renovation"


def test_empty_file_is_rejected(db, make_user, extractor):
    user = make_user()

    with pytest.raises(InvalidRequestError, match="empty"):
        InvoiceIngestionPipeline(db, extractor).ingest(user.username, b"", "image/png", "empty.png")
    assert extractor.calls == []


@pytest.mark.parametrize("content_type", ["text/plain", None, "", "application/json"])
def test_unsupported_type_is_rejected_before_ai_call(db, make_user, extractor, content_type):
    user = make_user()

    with pytest.raises(InvalidRequestError):
        InvoiceIngestionPipeline(db, extractor).ingest(user.username, b"hello", content_type, "notes.txt")
    assert extractor.calls == []
    assert invoice_count(db) == 0


def test_oversized_file_is_rejected(db, make_user, extractor):
    user = make_user()
    pipeline = InvoiceIngestionPipeline(db, extractor, max_upload_bytes=4)

    with pytest.raises(FileTooLargeError):
        pipeline.ingest(user.username, b"12345", "image/jpeg", "big.jpg")
    assert extractor.calls == []


def test_unknown_user_is_not_found(db, extractor):
    with pytest.raises(ResourceNotFoundError):
        InvoiceIngestionPipeline(db, extractor).ingest("ghost", PNG_BYTES, "image/png", "a.png")


def test_foreign_project_is_not_found(db, make_user, extractor):
    alice = make_user("alice")
    bob = make_user("bob")
    project = Project(owner_id=bob.id, name="Bob's")
    db.add(project)
    db.commit()

    with pytest.raises(ResourceNotFoundError):
        InvoiceIngestionPipeline(db, extractor).ingest(
            alice.username, PNG_BYTES, "image/png", "a.png", project_id=project.id
        )
    assert extractor.calls == []


def test_ai_failure_leaves_nothing_persisted(db, make_user, fake_extractor):
    user = make_user()
    extractor = fake_extractor(error=AiServiceError("Gemini API rate limit exceeded. Please try again later"))

    with pytest.raises(AiServiceError, match="rate limit"):
        InvoiceIngestionPipeline(db, extractor).ingest(user.username, PNG_BYTES, "image/png", "a.png")
    assert invoice_count(db) == 0


def test_error_sentinel_response_is_ai_error(db, make_user, fake_extractor):
    user = make_user()
    extractor = fake_extractor(response="Fehler: upstream broke")

    with pytest.raises(AiServiceError):
        InvoiceIngestionPipeline(db, extractor).ingest(user.username, PNG_BYTES, "image/png", "a.png")
    assert invoice_count(db) == 0


def test_unparseable_ai_text_still_creates_degraded_invoice(db, make_user, fake_extractor):
    user = make_user()
    extractor = fake_extractor(response="not json at all")

    response = InvoiceIngestionPipeline(db, extractor).ingest(user.username, PNG_BYTES, "image/png", "a.png")

    assert response.invoice_number == "Parsing fehlgeschlagen"
    assert response.vendor == "Unbekannt"
    assert response.amount == Decimal(0)
    assert response.invoice_date == date.today()
    assert response.description == "Raw AI Response: not json at all"


def test_unexpected_error_is_wrapped_as_file_processing_error(db, make_user, fake_extractor):
    user = make_user()
    extractor = fake_extractor(error=RuntimeError("disk on fire"))

    with pytest.raises(FileProcessingError, match="disk on fire"):
        InvoiceIngestionPipeline(db, extractor).ingest(user.username, PNG_BYTES, "image/png", "a.png")


def test_supported_content_types():
    assert is_supported_content_type("image/jpeg")
    assert is_supported_content_type("image/webp")
    assert is_supported_content_type("application/pdf")
    assert not is_supported_content_type("application/octet-stream")
    assert not is_supported_content_type(None)
