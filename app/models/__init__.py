# Import all models here so Base.metadata knows every table
from app.models.dynamic_record import FinanceRecord, Payslip, DynamicRecordMixin
from app.models.field_metadata import FieldMetadata
from app.models.import_provenance import ImportProvenance

# IAM models
from app.models.iam.permission import Permission
from app.models.iam.role import Role, role_permissions
from app.models.iam.user import User
