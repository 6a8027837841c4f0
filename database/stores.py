# database/stores.py
"""
Explicit query objects over a SQLAlchemy session.

Relations between users, projects and invoices are resolved here with plain
queries; the models carry foreign keys only.
"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Generic, List, Optional, Tuple, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import User, Project, Invoice

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


def _paginate(query, page: int, size: int) -> Page:
    total = query.order_by(None).count()
    items = query.offset(page * size).limit(size).all()
    return Page(items=items, page=page, size=size, total=total)


class _Store:
    def __init__(self, db: Session):
        self.db = db

    def add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def save(self, obj):
        return self.add(obj)


class UserStore(_Store):
    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def exists_username(self, username: str) -> bool:
        return self.get_by_username(username) is not None

    def exists_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None


class ProjectStore(_Store):
    def get_for_owner(self, project_id: int, owner_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id, Project.owner_id == owner_id).first()

    def get(self, project_id: int) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def list_by_owner(self, owner_id: int, page: int, size: int) -> Page[Project]:
        query = (
            self.db.query(Project)
            .filter(Project.owner_id == owner_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return _paginate(query, page, size)

    def invoice_stats(self, project_id: int) -> Tuple[int, Decimal]:
        count, total = (
            self.db.query(func.count(Invoice.id), func.coalesce(func.sum(Invoice.amount), 0))
            .filter(Invoice.project_id == project_id)
            .one()
        )
        return count, Decimal(str(total)).quantize(Decimal("0.01"))

    def delete(self, project: Project) -> None:
        # invoices outlive their project; they only lose the reference
        self.db.query(Invoice).filter(Invoice.project_id == project.id).update(
            {Invoice.project_id: None}, synchronize_session=False
        )
        self.db.delete(project)
        self.db.commit()


class InvoiceStore(_Store):
    def get(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.get(Invoice, invoice_id)

    def _newest_first(self, query):
        return query.order_by(Invoice.uploaded_at.desc(), Invoice.id.desc())

    def list_by_owner(self, owner_id: int, page: int, size: int) -> Page[Invoice]:
        query = self._newest_first(self.db.query(Invoice).filter(Invoice.owner_id == owner_id))
        return _paginate(query, page, size)

    def list_by_project(self, project_id: int) -> List[Invoice]:
        return self._newest_first(self.db.query(Invoice).filter(Invoice.project_id == project_id)).all()

    def search(
        self,
        owner_id: int,
        invoice_number: Optional[str] = None,
        vendor: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 0,
        size: int = 10,
    ) -> Page[Invoice]:
        query = self.db.query(Invoice).filter(Invoice.owner_id == owner_id)
        if invoice_number:
            query = query.filter(func.lower(Invoice.invoice_number).contains(invoice_number.lower(), autoescape=True))
        if vendor:
            query = query.filter(func.lower(Invoice.vendor).contains(vendor.lower(), autoescape=True))
        if start_date is not None:
            query = query.filter(Invoice.invoice_date >= start_date)
        if end_date is not None:
            query = query.filter(Invoice.invoice_date <= end_date)
        return _paginate(self._newest_first(query), page, size)

    def delete(self, invoice: Invoice) -> None:
        self.db.delete(invoice)
        self.db.commit()
