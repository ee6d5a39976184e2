from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint, func
from app.database.session import Base


class FieldMetadata(Base):
    __tablename__ = "field_metadata"

    field_id = Column(Integer, primary_key=True, index=True)
    category = Column(String(50), nullable=False, index=True)  # finance, payslip
    key = Column(String(100), nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="text")  # text, number, currency, date, boolean
    sortable = Column(Boolean, default=True, nullable=False)
    highlight = Column(Boolean, default=False, nullable=False)
    hidden = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("category", "key", name="uq_field_metadata_category_key"),
    )
