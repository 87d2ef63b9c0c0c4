from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from freelancehive.config import get_settings
from freelancehive.database import init_db
from freelancehive.rate_limiter import RateLimitMiddleware
from freelancehive.auth_service.routes import router as auth_router
from freelancehive.project_service.routes import router as jobs_router, applications_router
from freelancehive.contract_service.routes import router as contracts_router
from freelancehive.payments_service.routes import (
    router as payments_router, coupons_router, admin_coupons_router,
)
from freelancehive.honey_service.routes import router as honey_router, refunds_router
from freelancehive.user_service.routes import (
    profiles_router, earnings_router, referrals_router, gdpr_router, admin_router,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="FreelanceHive API",
    description="Freelance marketplace backend: jobs, contracts, escrow and Honey Drops",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_max,
    window_ms=settings.rate_limit_window_ms,
)

app.include_router(auth_router)
app.include_router(jobs_router)
app.include_router(applications_router)
app.include_router(contracts_router)
app.include_router(payments_router)
app.include_router(coupons_router)
app.include_router(admin_coupons_router)
app.include_router(honey_router)
app.include_router(refunds_router)
app.include_router(profiles_router)
app.include_router(earnings_router)
app.include_router(referrals_router)
app.include_router(admin_router)
app.include_router(gdpr_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if not get_settings().is_production:
        content["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.on_event("startup")
async def startup_event():
    init_db()


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "freelancehive"}
