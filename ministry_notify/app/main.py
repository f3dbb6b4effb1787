import logging

from fastapi import FastAPI

from .admin.router import router as admin_router
from .config import get_prefix
from .errors import CallableError, callable_error_handler
from .join_requests.router import router as join_requests_router
from .logging_config import setup_logging

setup_logging()

logger = logging.getLogger(__name__)


API_VERSION = '/api/v1'
PREFIX = get_prefix(API_VERSION)

logger.info(f"Start HTTP server with prefix: {PREFIX}")

app = FastAPI(root_path=PREFIX, title="Ministry Notification API", version="1.0.0")

app.add_exception_handler(CallableError, callable_error_handler)

app.include_router(join_requests_router)
app.include_router(admin_router)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}
