# services/ingestion.py
import base64
import logging
from typing import Optional

from sqlalchemy.orm import Session

from agents.gemini_agent import GeminiAgent
from agents.parser_agent import ParserAgent
from database.models import Invoice, utcnow
from database.stores import InvoiceStore, ProjectStore, UserStore
from errors import (
    AiServiceError,
    FileProcessingError,
    FileTooLargeError,
    InvalidRequestError,
    ResourceNotFoundError,
)
from schemas import InvoiceResponse
from services.invoice_service import to_response
from services.ownership import resolve_user
from settings import MAX_UPLOAD_BYTES

logger = logging.getLogger("services.ingestion")

# Marker the extraction client uses for its own error texts
AI_ERROR_PREFIX = "Fehler"


def is_supported_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type.startswith("image/") or content_type == "application/pdf"


class InvoiceIngestionPipeline:
    """
    Upload -> validation -> AI extraction -> normalization -> persistence.

    Domain errors propagate unchanged; anything else raised along the way is
    reported as FileProcessingError. No invoice row is written unless the AI
    call succeeded.
    """

    def __init__(
        self,
        db: Session,
        extractor: GeminiAgent,
        parser: Optional[ParserAgent] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self.db = db
        self.users = UserStore(db)
        self.projects = ProjectStore(db)
        self.invoices = InvoiceStore(db)
        self.extractor = extractor
        self.parser = parser or ParserAgent()
        self.max_upload_bytes = max_upload_bytes

    def ingest(
        self,
        username: str,
        file_bytes: bytes,
        content_type: Optional[str],
        file_name: Optional[str] = None,
        project_id: Optional[int] = None,
    ) -> InvoiceResponse:
        try:
            return self._ingest(username, file_bytes, content_type, file_name, project_id)
        except (ResourceNotFoundError, InvalidRequestError, AiServiceError):
            raise
        except Exception as e:
            logger.exception("Unexpected error while processing %s", file_name)
            self.db.rollback()
            raise FileProcessingError(f"Error processing invoice file: {e}") from e

    def _ingest(self, username, file_bytes, content_type, file_name, project_id) -> InvoiceResponse:
        if not file_bytes:
            raise InvalidRequestError("Uploaded file is empty")
        if len(file_bytes) > self.max_upload_bytes:
            raise FileTooLargeError(
                f"The uploaded file exceeds the maximum allowed size ({self.max_upload_bytes} bytes)"
            )
        if not is_supported_content_type(content_type):
            raise InvalidRequestError("File must be an image (JPEG, PNG) or PDF")

        user = resolve_user(self.users, username)

        project = None
        if project_id is not None:
            project = self.projects.get_for_owner(project_id, user.id)
            if project is None:
                raise ResourceNotFoundError.for_id("Project", project_id)

        logger.info("Processing upload %s (%d bytes) for user %s", file_name, len(file_bytes), user.username)

        base64_image = base64.b64encode(file_bytes).decode("ascii")
        try:
            ai_response = self.extractor.extract_invoice_data(base64_image, content_type)
        except AiServiceError as e:
            logger.warning("AI extraction failed for %s: %s", file_name, e.message)
            raise

        if ai_response.startswith(AI_ERROR_PREFIX):
            raise AiServiceError(f"Failed to extract invoice data: {ai_response}")

        fields = self.parser.parse(ai_response)

        invoice = Invoice(
            owner_id=user.id,
            project_id=project.id if project else None,
            invoice_number=fields.invoice_number,
            vendor=fields.vendor,
            amount=fields.amount,
            invoice_date=fields.invoice_date,
            description=fields.description,
            uploaded_at=utcnow(),
            file_name=file_name,
            raw_extraction_text=ai_response,
            image_data=file_bytes,
            content_type=content_type,
        )
        invoice = self.invoices.add(invoice)
        logger.info("Stored invoice %s for user %s", invoice.id, user.username)

        return to_response(invoice, project)
