# services/invoice_service.py
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from agents.parser_agent import parse_iso_date
from database.models import Invoice, Project, User
from database.stores import InvoiceStore, Page, ProjectStore, UserStore
from errors import InvalidRequestError, ResourceNotFoundError
from schemas import InvoiceResponse, PageResponse, UpdateInvoiceRequest
from services.ownership import check_page, require_owner, resolve_user

DEFAULT_IMAGE_TYPE = "image/jpeg"


def to_response(invoice: Invoice, project: Optional[Project] = None) -> InvoiceResponse:
    response = InvoiceResponse.model_validate(invoice)
    if project is not None:
        response.project_name = project.name
    return response


def parse_date_param(value: Optional[str], name: str = "date") -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise InvalidRequestError(f"Invalid {name} format. Use YYYY-MM-DD")


class InvoiceService:
    def __init__(self, db: Session):
        self.users = UserStore(db)
        self.projects = ProjectStore(db)
        self.invoices = InvoiceStore(db)

    def _response(self, invoice: Invoice) -> InvoiceResponse:
        project = self.projects.get(invoice.project_id) if invoice.project_id is not None else None
        return to_response(invoice, project)

    def _page(self, page: Page[Invoice]) -> PageResponse[InvoiceResponse]:
        return PageResponse[InvoiceResponse](
            content=[self._response(i) for i in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total,
            total_pages=page.total_pages,
        )

    def _owned_invoice(self, username: str, invoice_id: int, action: str) -> Tuple[User, Invoice]:
        user = resolve_user(self.users, username)
        invoice = self.invoices.get(invoice_id)
        if invoice is None:
            raise ResourceNotFoundError.for_id("Invoice", invoice_id)
        require_owner(invoice, user, action)
        return user, invoice

    def list_invoices(self, username: str, page: int = 0, size: int = 10) -> PageResponse[InvoiceResponse]:
        check_page(page, size)
        user = resolve_user(self.users, username)
        return self._page(self.invoices.list_by_owner(user.id, page, size))

    def list_project_invoices(self, username: str, project_id: int) -> List[InvoiceResponse]:
        user = resolve_user(self.users, username)
        project = self.projects.get_for_owner(project_id, user.id)
        if project is None:
            raise ResourceNotFoundError.for_id("Project", project_id)
        return [to_response(i, project) for i in self.invoices.list_by_project(project.id)]

    def search(
        self,
        username: str,
        invoice_number: Optional[str] = None,
        vendor: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 0,
        size: int = 10,
    ) -> PageResponse[InvoiceResponse]:
        check_page(page, size)
        if start_date is not None and end_date is not None and start_date > end_date:
            raise InvalidRequestError("Start date must be before or equal to end date")
        user = resolve_user(self.users, username)
        result = self.invoices.search(user.id, invoice_number, vendor, start_date, end_date, page, size)
        return self._page(result)

    def get(self, username: str, invoice_id: int) -> InvoiceResponse:
        _, invoice = self._owned_invoice(username, invoice_id, "access")
        return self._response(invoice)

    def get_image(self, username: str, invoice_id: int) -> Tuple[bytes, str]:
        """Return the stored upload and its media type."""
        _, invoice = self._owned_invoice(username, invoice_id, "access")
        if invoice.image_data is None:
            raise ResourceNotFoundError("Invoice image data not found")
        return invoice.image_data, invoice.content_type or DEFAULT_IMAGE_TYPE

    def update(self, username: str, invoice_id: int, request: UpdateInvoiceRequest) -> InvoiceResponse:
        _, invoice = self._owned_invoice(username, invoice_id, "update")

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "amount" in changes and changes["amount"] < Decimal(0):
            raise InvalidRequestError("Amount cannot be negative")
        if "invoice_date" in changes:
            new_date = parse_date_param(changes["invoice_date"])
            if new_date is None:
                raise InvalidRequestError("Invalid date format. Use YYYY-MM-DD")
            if new_date > date.today():
                raise InvalidRequestError("Invoice date cannot be in the future")
            changes["invoice_date"] = new_date

        for field, value in changes.items():
            setattr(invoice, field, value)

        return self._response(self.invoices.save(invoice))

    def delete(self, username: str, invoice_id: int) -> None:
        _, invoice = self._owned_invoice(username, invoice_id, "delete")
        self.invoices.delete(invoice)
