from types import SimpleNamespace

import pytest

from app.core.exceptions import InternalFailureError
from app.models.field_metadata import FieldMetadata
from app.utils.upsert import insert_ignore


class _MySQLSession:
    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name="mysql"))


def test_unsupported_backend_is_an_internal_failure():
    with pytest.raises(InternalFailureError) as exc_info:
        insert_ignore(_MySQLSession(), FieldMetadata.__table__, [{"category": "finance", "key": "rick"}])

    assert "mysql" in exc_info.value.message


def test_no_rows_is_a_no_op():
    assert insert_ignore(_MySQLSession(), FieldMetadata.__table__, []) == 0


def test_duplicate_rows_are_absorbed(test_db):
    row = {
        "category": "finance", "key": "rick", "label": "RICK", "type": "text",
        "sortable": True, "highlight": False, "hidden": False, "display_order": 1, "is_active": True,
    }

    assert insert_ignore(test_db, FieldMetadata.__table__, [row]) == 1
    assert insert_ignore(test_db, FieldMetadata.__table__, [row]) == 0
