# database/models.py

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Date, Numeric, ForeignKey, Text, LargeBinary
from database.db_session import Base


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    invoice_number = Column(String(255), nullable=False, index=True)
    vendor = Column(String(255), nullable=False)
    amount = Column(Numeric(19, 2), nullable=False)
    invoice_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    uploaded_at = Column(DateTime, default=utcnow, nullable=False)
    file_name = Column(String(1024), nullable=True)
    raw_extraction_text = Column(Text, nullable=True)  # unmodified AI response
    image_data = Column(LargeBinary, nullable=True)
    content_type = Column(String(100), nullable=True)
