# ── Dynamic records ───────────────────────────────────────────
from app.routes.finance_router import router as finance_router
from app.routes.payslip_router import router as payslip_router

# ── IAM ───────────────────────────────────────────────────────
from app.routes.iam import permission_router, role_router, superadmin_router
