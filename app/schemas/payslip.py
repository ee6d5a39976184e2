from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class EntryTypeEnum(str, Enum):
    CR = "CR"
    DR = "DR"


class PayslipEntry(BaseModel):
    field: str
    label: Optional[str] = None
    amount: float = Field(..., ge=0)
    type: EntryTypeEnum


class PayslipGenerateRequest(BaseModel):
    rick: str = Field(..., min_length=1)
    month_name: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=9999)


class PayslipPreview(BaseModel):
    driver_name: Optional[str] = None
    rick: str
    plate: str = "N/A"
    month_name: str
    year: int
    obopm: float = 0
    payslip_array: List[PayslipEntry] = []
    total_cr: float = 0
    total_dr: float = 0


class PayslipInsert(BaseModel):
    """Any generated or hand-written payslip; unknown keys become record fields."""
    month_name: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=9999)
    payslip_array: List[PayslipEntry] = []

    model_config = ConfigDict(extra="allow")

    def field_values(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class StatusCount(BaseModel):
    status: Optional[str] = None
    count: int


class PayslipSummary(BaseModel):
    period: str
    total_payslips: int
    total_gross_salary: Optional[float] = None
    total_net_salary: Optional[float] = None
    avg_gross_salary: Optional[float] = None
    avg_net_salary: Optional[float] = None
    statusBreakdown: List[StatusCount] = []
