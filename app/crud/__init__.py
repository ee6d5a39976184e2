# Import all CRUD modules for easier access
from app.crud.field_metadata import field_metadata_crud
from app.crud.dynamic_record import finance_crud, payslip_crud
from app.crud.iam import permission_crud, role_crud
