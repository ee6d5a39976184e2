from typing import Any, Dict, List

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.exceptions import InternalFailureError


def insert_ignore(db: Session, table: Table, rows: List[Dict[str, Any]]) -> int:
    """
    INSERT ... ON CONFLICT DO NOTHING for the bound dialect.

    Returns the number of rows actually inserted; rows that collide with an
    existing unique key are absorbed without error. Does not commit.
    """
    if not rows:
        return 0

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(rows).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(rows).on_conflict_do_nothing()
    else:
        raise InternalFailureError(f"Insert-if-absent is not supported on the {dialect} database backend")

    result = db.execute(stmt)
    return result.rowcount or 0
