import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coupon_manager.core.config import settings
from coupon_manager.routers import coupons, health, telegram

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Coupons", "description": "Create, list, use and delete coupons."},
    {"name": "Health", "description": "Service liveness."},
    {"name": "Telegram", "description": "Telegram bot webhook."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Track gift cards and service vouchers: money coupons with a spendable "
        "balance and single-use product coupons."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Idempotency-Replayed"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Something went wrong!",
            "message": str(exc) if settings.DEBUG else "Internal server error",
        },
    )


app.include_router(coupons.router, prefix=f"{settings.API_PREFIX}/coupons", tags=["Coupons"])
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["Health"])
app.include_router(telegram.router, prefix=f"{settings.API_PREFIX}/telegram", tags=["Telegram"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "status": "running",
    }
