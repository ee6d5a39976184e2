from enum import Enum
from pydantic import BaseModel


class CompletenessEnum(str, Enum):
    COMPLETE = "COMPLETE"
    INCOMPLETE = "INCOMPLETE"


class SuperadminStatus(BaseModel):
    totalPermissions: int
    superadminPermissions: int
    missingCount: int
    status: CompletenessEnum


class SuperadminRepairResult(BaseModel):
    grantedCount: int
