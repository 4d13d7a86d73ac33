import logging
import os
import uuid
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

# Load environment variables from phone_lookup/.env
from dotenv import load_dotenv
package_dir = Path(__file__).parent
load_dotenv(package_dir / ".env")

from .clients.firestore import FirestorePhoneStore
from .clients.store import PhoneStore
from .config.config_loader import load_runtime_config
from .config.settings import RuntimeConfig
from .middleware.auth import verify_upload_password
from .services.batch_processor import BatchProcessor
from .services.lookup_service import lookup_phone
from .services.merge_engine import MergeEngine
from .services.priority import PriorityPolicy
from .utils.errors import InvalidPhoneError, StoreUnavailableError

logger = logging.getLogger(__name__)


class UploadRequest(BaseModel):
    password: Optional[str] = None
    phoneRecords: Optional[Any] = None


class LookupRequest(BaseModel):
    phone: Optional[Any] = None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to logs for tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _allowed_origins() -> list[str]:
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
    if allowed_origins_env:
        return [origin.strip() for origin in allowed_origins_env.split(",")]
    return ["*"]


def create_app(store: Optional[PhoneStore] = None, config: Optional[RuntimeConfig] = None) -> FastAPI:
    """Build the API.

    When ``store`` is given the caller owns its lifecycle. Otherwise a
    Firestore store is opened on startup and closed on shutdown.
    """
    app = FastAPI()

    allowed_origins = _allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(RequestIDMiddleware)

    def _configure(runtime_config: RuntimeConfig, phone_store: PhoneStore, owns_store: bool) -> None:
        engine = MergeEngine(PriorityPolicy(runtime_config.priority_policy))
        app.state.config = runtime_config
        app.state.store = phone_store
        app.state.owns_store = owns_store
        app.state.processor = BatchProcessor(phone_store, engine=engine)

    app.state.store = None
    if store is not None:
        _configure(config or RuntimeConfig(), store, owns_store=False)

    @app.on_event("startup")
    async def startup_event():
        if app.state.store is None:
            runtime_config = config or load_runtime_config()
            phone_store = FirestorePhoneStore(runtime_config.firestore, runtime_config.retry).open()
            _configure(runtime_config, phone_store, owns_store=True)
        logger.info(
            "Application startup complete",
            extra={"config_version": app.state.config.metadata.get("config_version")},
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.store is not None and app.state.owns_store:
            app.state.store.close()
        logger.info("Application shutdown event triggered")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error(
            "Request validation error",
            extra={"url": str(request.url), "method": request.method, "errors": exc.errors()},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "detail": exc.errors()},
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error("Store unavailable", extra={"url": str(request.url), "error": str(exc)})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Store unavailable", "message": str(exc)},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.get("/health")
    def health():
        return {"status": "ok", "store_available": app.state.store is not None}

    @app.post("/upload")
    def upload(body: UploadRequest, request: Request):
        verify_upload_password(body.password, app.state.config.upload.password_env)

        records = body.phoneRecords
        if not records or not isinstance(records, list):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No phone records provided")

        request_id = getattr(request.state, "request_id", None)
        result = app.state.processor.process_batch(records, batch_id=request_id)

        try:
            total = app.state.store.count()
        except StoreUnavailableError as exc:
            logger.warning("Could not count phone records", extra={"error": str(exc)})
            total = None

        return {
            "success": True,
            "statistics": {**result.as_dict(), "totalInDatabase": total},
        }

    def _lookup(phone: Any):
        if phone is None or phone == "":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number required")
        try:
            return lookup_phone(app.state.store, phone).to_response()
        except InvalidPhoneError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid phone number") from exc

    @app.get("/lookup")
    def lookup_get(phone: Optional[str] = Query(None)):
        return _lookup(phone)

    @app.post("/lookup")
    def lookup_post(body: LookupRequest):
        return _lookup(body.phone)

    return app


app = create_app()
