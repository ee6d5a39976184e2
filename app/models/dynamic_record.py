from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from app.database.session import Base


class DynamicRecordMixin:
    """
    Columns shared by every record whose business payload is an open JSON map.

    ``year`` and ``month_name`` are the partition columns; everything else a
    spreadsheet or a payslip carries lives in ``fields``.
    """

    id = Column(Integer, primary_key=True, index=True)
    fields = Column(JSON, nullable=False, default=dict)
    year = Column(Integer, index=True)
    month_name = Column(String(20), index=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Catalog category the record's keys are described under
    category = ""


class FinanceRecord(DynamicRecordMixin, Base):
    __tablename__ = "finance_records"

    category = "finance"


class Payslip(DynamicRecordMixin, Base):
    __tablename__ = "payslips"

    category = "payslip"

    # CR/DR line items of a generated payslip, kept out of the scalar ``fields`` map
    entries = Column(JSON, nullable=False, default=list)
