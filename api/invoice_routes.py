import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from agents.gemini_agent import GeminiAgent
from api.auth import get_current_username
from database.db_session import get_db
from schemas import InvoiceResponse, PageResponse, UpdateInvoiceRequest
from services.ingestion import InvoiceIngestionPipeline
from services.invoice_service import InvoiceService, parse_date_param
from settings import MAX_UPLOAD_BYTES

# Logging
logger = logging.getLogger("api.invoices")
router = APIRouter(prefix="/api/invoices", tags=["invoices"])

# Instantiate agents
gemini = GeminiAgent()


def get_extraction_agent() -> GeminiAgent:
    return gemini


def _upload(file: UploadFile, project_id: Optional[int], db: Session, username: str, extractor: GeminiAgent):
    # one byte past the limit is enough for the size check to reject it
    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    pipeline = InvoiceIngestionPipeline(db, extractor, max_upload_bytes=MAX_UPLOAD_BYTES)
    return pipeline.ingest(username, content, file.content_type, file.filename, project_id)


@router.post("/upload", response_model=InvoiceResponse)
def upload_invoice(
    file: UploadFile = File(...),
    project_id: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
    extractor: GeminiAgent = Depends(get_extraction_agent),
):
    return _upload(file, project_id, db, username, extractor)


@router.post("/upload/{project_id}", response_model=InvoiceResponse)
def upload_invoice_to_project(
    project_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
    extractor: GeminiAgent = Depends(get_extraction_agent),
):
    return _upload(file, project_id, db, username, extractor)


@router.get("", response_model=PageResponse[InvoiceResponse], summary="Get all invoices for current user")
def list_invoices(
    page: int = 0,
    size: int = 10,
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
):
    return InvoiceService(db).list_invoices(username, page, size)


@router.get("/search", response_model=PageResponse[InvoiceResponse])
def search_invoices(
    invoice_number: Optional[str] = None,
    vendor: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 0,
    size: int = 10,
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
):
    return InvoiceService(db).search(
        username,
        invoice_number=invoice_number,
        vendor=vendor,
        start_date=parse_date_param(start_date, "start_date"),
        end_date=parse_date_param(end_date, "end_date"),
        page=page,
        size=size,
    )


@router.get("/project/{project_id}", response_model=List[InvoiceResponse])
def list_project_invoices(project_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    return InvoiceService(db).list_project_invoices(username, project_id)


@router.get("/{invoice_id}", response_model=InvoiceResponse, summary="Get invoice details")
def get_invoice(invoice_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    return InvoiceService(db).get(username, invoice_id)


@router.get("/{invoice_id}/download")
def download_invoice(invoice_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    data, content_type = InvoiceService(db).get_image(username, invoice_id)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="invoice_{invoice_id}"'},
    )


@router.put("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: int,
    payload: UpdateInvoiceRequest,
    db: Session = Depends(get_db),
    username: str = Depends(get_current_username),
):
    return InvoiceService(db).update(username, invoice_id, payload)


@router.delete("/{invoice_id}")
def delete_invoice(invoice_id: int, db: Session = Depends(get_db), username: str = Depends(get_current_username)):
    InvoiceService(db).delete(username, invoice_id)
    logger.info("Deleted invoice %s for user %s", invoice_id, username)
    return {"status": "deleted", "invoice_id": invoice_id}
