from typing import Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from core.env import env_list  # noqa: E402
from core.logging import get_logger, setup_logging  # noqa: E402
from web import routers  # noqa: E402
from web.middleware.public_cors import public_cors_middleware  # noqa: E402

setup_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Campaign CMS API",
    description="Campaign pages, dynamic forms and submission intake.",
    version="0.1.0",
)

origins = env_list("ADMIN_CORS_ORIGINS", ["http://localhost:3000"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def apply_public_cors(request: Request, call_next):
    """Open CORS for anonymous campaign endpoints; admin routes keep the allow-list above."""
    return await public_cors_middleware(request, call_next)


def _validation_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part != "body"]
        key = ".".join(loc) or "body"
        errors.setdefault(key, []).append(str(item.get("msg", "Invalid value")))
    return errors


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request %s %s.", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "code": "request.invalid",
                "message": "Invalid request data",
                "errors": _validation_errors(exc),
            }
        },
    )


@app.get("/", summary="Health Check", tags=["Default"])
def health_check():
    """Liveness check for the API process."""
    return {"status": "ok", "message": "Campaign CMS API is running."}


@app.get("/healthz", include_in_schema=False)
def readiness_check():
    """Probe that also verifies database connectivity."""
    db_ok, db_error = routers.health.ping_database()
    payload = {"status": "ok" if db_ok else "unhealthy", "database": {"ok": db_ok}}
    if db_error:
        payload["database"]["error"] = db_error
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=payload)


app.include_router(routers.campaigns.router, prefix="/api/v1")
app.include_router(routers.campaign_submissions.router, prefix="/api/v1")
app.include_router(routers.health.router, prefix="/api/v1")
