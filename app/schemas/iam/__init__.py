from app.schemas.iam.permission import (
    PermissionBase, PermissionCreate, PermissionResponse,
    PermissionGroup, PermissionPaginationResponse
)
from app.schemas.iam.role import (
    RoleBase, RoleCreate, RoleUpdate, RoleResponse, RoleSummary,
    RolePermissionAssignment, RoleUserResponse
)
from app.schemas.iam.superadmin import (
    CompletenessEnum, SuperadminStatus, SuperadminRepairResult
)
