import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edugrid.core import config
from edugrid.core.logging_middleware import LoggingMiddleware
from edugrid.db.classroom_store import ClassroomStore
from edugrid.routers.submissions import router as submissions_router
from edugrid.routers.tasks import router as tasks_router

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = ClassroomStore(config.DATABASE_URL)
    store.connect()
    app.state.store = store
    try:
        yield
    finally:
        store.disconnect()


app = FastAPI(title="EduGrid", lifespan=lifespan)

# Middleware
app.add_middleware(LoggingMiddleware)


# Every error body has the same shape as a successful one: success + message
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Invalid request data",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Internal server error"}
    if config.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Include routers
app.include_router(tasks_router, prefix="/api/classrooms", tags=["tasks"])
app.include_router(submissions_router, prefix="/api/classrooms", tags=["submissions"])
