from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import datetime


class PermissionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)


class PermissionCreate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def default_name(self):
        # "resource.action" unless the caller names it explicitly
        if not self.name:
            self.name = f"{self.resource}.{self.action}"
        return self


class PermissionResponse(PermissionBase):
    permission_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionGroup(BaseModel):
    resource: str
    permissions: List[PermissionResponse]


class PermissionPaginationResponse(BaseModel):
    total: int
    items: List[PermissionResponse]

    model_config = ConfigDict(from_attributes=True)
