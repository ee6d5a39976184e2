from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from app.database.session import Base


class Permission(Base):
    __tablename__ = "iam_permissions"

    permission_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)  # conventionally "resource.action"
    resource = Column(String(100), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    roles = relationship(
        "Role",
        secondary="iam_role_permissions",
        back_populates="permissions",
    )
