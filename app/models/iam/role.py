from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func, Table
from sqlalchemy.orm import relationship
from app.database.session import Base

# Association table for Role-Permission many-to-many relationship.
# The composite primary key keeps a role from holding the same permission twice.
role_permissions = Table(
    'iam_role_permissions',
    Base.metadata,
    Column('role_id', Integer, ForeignKey('iam_roles.role_id', ondelete="CASCADE"), primary_key=True),
    Column('permission_id', Integer, ForeignKey('iam_permissions.permission_id', ondelete="CASCADE"), primary_key=True),
    Column('created_at', DateTime, default=func.now(), nullable=False),
)


class Role(Base):
    __tablename__ = "iam_roles"

    role_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255))
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    permissions = relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        order_by="Permission.resource, Permission.action",
    )
    users = relationship("User", back_populates="role")
