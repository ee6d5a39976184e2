from app.crud.iam.permission import permission_crud
from app.crud.iam.role import role_crud
