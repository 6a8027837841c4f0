# schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, field_serializer

T = TypeVar("T")


# ------------------------------
# Invoices
# ------------------------------
class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: Optional[int] = None
    project_name: Optional[str] = None
    invoice_number: str
    vendor: str
    amount: Decimal
    invoice_date: Optional[date] = None
    description: Optional[str] = None
    uploaded_at: datetime
    file_name: Optional[str] = None

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class UpdateInvoiceRequest(BaseModel):
    invoice_number: Optional[str] = None
    vendor: Optional[str] = None
    amount: Optional[Decimal] = None
    invoice_date: Optional[str] = None  # YYYY-MM-DD
    description: Optional[str] = None


# ------------------------------
# Projects
# ------------------------------
class ProjectRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    invoice_count: int = 0
    total_cost: Decimal = Decimal(0)

    @field_serializer("total_cost")
    def serialize_total_cost(self, total_cost: Decimal) -> float:
        return float(total_cost)


# ------------------------------
# Pagination
# ------------------------------
class PageResponse(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
