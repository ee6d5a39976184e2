from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.schemas.field_value import FieldType


class FieldDescriptor(BaseModel):
    key: str
    label: str
    type: FieldType = FieldType.TEXT
    sortable: bool = True
    highlight: bool = False
    hidden: bool = False
    display_order: int = 0
    category: str
    catalogued: bool = False

    model_config = ConfigDict(from_attributes=True)


class FieldDescriptorUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[FieldType] = None
    sortable: Optional[bool] = None
    highlight: Optional[bool] = None
    hidden: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class RecordResponse(BaseModel):
    id: int
    year: Optional[int] = None
    month_name: Optional[str] = None
    fields: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    def flatten(self) -> Dict[str, Any]:
        """Business fields first, first-class columns win on a name clash."""
        return {
            **self.fields,
            "id": self.id,
            "year": self.year,
            "month_name": self.month_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class RecordUpdate(BaseModel):
    """Shallow patch merged into ``fields``; partition columns may move the record."""
    fields: Dict[str, Any] = Field(default_factory=dict)
    year: Optional[int] = None
    month_name: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class BulkDeleteResult(BaseModel):
    deletedIds: List[int]
    notFoundIds: List[int]


class DeleteFieldResult(BaseModel):
    key: str
    recordsUpdated: int
    descriptorRemoved: bool


class RejectedRow(BaseModel):
    rowNumber: int
    reason: str
    data: Dict[str, Any]


class DiscoveredField(BaseModel):
    key: str
    label: str
    type: FieldType
    display_order: int


class ImportResult(BaseModel):
    totalRows: int
    validRows: int
    insertedRows: int
    rejectedRows: int
    rejectedData: List[RejectedRow] = []
    discoveredFields: List[DiscoveredField] = []
    isFirstUpload: bool
    year: int
    month_name: str


class PartitionDeleteResult(BaseModel):
    year: int
    month_name: str
    deletedCount: int


# Keys a client may echo back from a list response that are not record fields
RECORD_COLUMNS = frozenset({"id", "year", "month_name", "created_at", "updated_at", "payslip_array"})


def record_update_from_body(body: Dict[str, Any]) -> RecordUpdate:
    """
    Accept either ``{"fields": {...}}`` or a flat record as returned by the
    list endpoints; partition columns are lifted out of the flat form.
    """
    if isinstance(body.get("fields"), dict):
        return RecordUpdate(**body)
    return RecordUpdate(
        fields={k: v for k, v in body.items() if k not in RECORD_COLUMNS},
        year=body.get("year"),
        month_name=body.get("month_name"),
    )


def serialize_record(record: Any) -> Dict[str, Any]:
    data = RecordResponse.model_validate(record).flatten()
    entries = getattr(record, "entries", None)
    if entries is not None:
        data["payslip_array"] = entries
    return data
