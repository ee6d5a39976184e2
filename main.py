import sys

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy.sql import text
import uvicorn

from app.config import settings
from app.core.exceptions import AppError
from app.core.logging_config import setup_logging, get_logger
from app.database.session import SessionLocal, get_db
from app.routes import (
    finance_router,
    payslip_router,
    permission_router,
    role_router,
    superadmin_router,
)
from app.services.superadmin_service import SuperadminService
from app.utils.response_utils import ResponseWrapper

# Setup logging as early as possible
print("MAIN: Setting up logging...", file=sys.stdout, flush=True)
setup_logging(force_configure=True)

logger = get_logger(__name__)
logger.info("🚀 Main module starting...")

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Fleet admin backend: RBAC, finance ledger and payslips",
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(finance_router, prefix=settings.API_PREFIX)
app.include_router(payslip_router, prefix=settings.API_PREFIX)

# Include IAM routers
app.include_router(permission_router, prefix=f"{settings.API_PREFIX}/iam")
app.include_router(role_router, prefix=f"{settings.API_PREFIX}/iam")
app.include_router(superadmin_router, prefix=f"{settings.API_PREFIX}/iam")


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors that escape a route still leave as the standard envelope"""
    logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseWrapper.error(message=exc.message, error_code=exc.error_code, details=exc.details),
    )


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME} API"}


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {str(e)}"
        )


@app.on_event("startup")
async def startup_event():
    """Create tables, seed RBAC and make sure superadmin holds every permission"""
    logger.info(f"🌟 {settings.APP_NAME} starting up (env={settings.ENV})...")
    from app.database.create_tables import create_tables

    create_tables()
    db = SessionLocal()
    try:
        SuperadminService.ensure_on_startup(db)
    finally:
        db.close()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"🛑 {settings.APP_NAME} shutting down...")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
