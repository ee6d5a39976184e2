from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy import inspect

from app.core.exceptions import NotFoundError
from app.database.session import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base class for CRUD operations.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    @property
    def _pk(self):
        return getattr(self.model, inspect(self.model).primary_key[0].name)

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Get an object by ID
        """
        return db.query(self.model).filter(self._pk == id).first()

    def get_or_404(self, db: Session, id: Any, label: Optional[str] = None) -> ModelType:
        obj = self.get(db, id)
        if obj is None:
            raise NotFoundError(f"{label or self.model.__name__} {id} not found")
        return obj

    def update(self, db: Session, *, db_obj: ModelType, obj_in: Union[UpdateSchemaType, Dict[str, Any]]) -> ModelType:
        """
        Update plain column attributes and commit
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        columns = {column.key for column in inspect(self.model).column_attrs}
        for field, value in update_data.items():
            if field in columns:
                setattr(db_obj, field, value)

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, *, id: Any) -> ModelType:
        """
        Remove an object
        """
        obj = self.get_or_404(db, id)
        db.delete(obj)
        db.commit()
        return obj

