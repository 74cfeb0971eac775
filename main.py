from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import logging

from app.core.config import settings
from app.api.api import api_router
from app.core.database import Base, engine
from app.models import WaitlistEntry  # noqa: F401 registers the table on Base.metadata
from app.core.exceptions import BaseAppException, GENERIC_ERROR_MESSAGE
from app.services.waitlist_validation import INVALID_EMAIL_MESSAGE, INVALID_PHONE_MESSAGE

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Configure audit logger (JSON lines)
audit_logger = logging.getLogger("audit")
if not audit_logger.handlers:
    handler = logging.StreamHandler()
    # Keep raw JSON line without extra prefixes
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
audit_logger.setLevel(logging.INFO)
# Do not propagate to root to avoid duplication
audit_logger.propagate = False

api_description = """
## Waitlist API

Collects signups for the landing page waitlist.

- `POST /api/whitelist` - join with an email and/or a Moroccan WhatsApp number
- `GET /api/whitelist` - signup counts for the configured storage backend

Storage is selected with `WAITLIST_STORAGE` (`file`, `database` or `brevo`).
New signups are synced to the Brevo contact list and confirmed by email and
WhatsApp when those services are configured.
"""

app = FastAPI(
    title="Waitlist API",
    description=api_description,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# GZip compression for large JSON responses
app.add_middleware(GZipMiddleware, minimum_size=500)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    if exc.status_code >= 500:
        logger.error(f"❌ {type(exc).__name__} on {request.method} {request.url.path}: {exc.details or exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same 400 shape as form validation errors."""
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    if "email" in loc:
        message = INVALID_EMAIL_MESSAGE
    elif "phone" in loc:
        message = INVALID_PHONE_MESSAGE
    else:
        message = "Données du formulaire invalides"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


# Include API router
app.include_router(api_router, prefix="/api")


@app.on_event("startup")
def create_tables_on_startup():
    if settings.storage_backend != "database":
        return
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("🪴 Waitlist tables ready")
    except Exception as e:
        # Do not block startup; requests will surface the database error
        logger.error(f"⚠️ Table creation failed: {e}")


@app.get("/")
async def root():
    return {"message": "Waitlist API is running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "storage": settings.storage_backend}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
