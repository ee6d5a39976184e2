from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from app.database.session import Base


class ImportProvenance(Base):
    """Where an imported record came from: its spreadsheet row and header layout."""
    __tablename__ = "import_provenance"

    category = Column(String(50), primary_key=True)
    record_id = Column(Integer, primary_key=True)
    row_ordinal = Column(Integer, nullable=False)  # 1-based data row in the uploaded sheet
    column_order = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=func.now(), nullable=False)
