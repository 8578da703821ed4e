import time

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
import uvicorn

from blocklist_api.blocklist.errors import (
    BlocklistError,
    ErrorKind,
    RequestCancelledError,
    RequestTimeoutError,
)
from blocklist_api.blocklist.manager import BlocklistStore
from blocklist_api.config import Settings, get_settings
from blocklist_api.utils.logger import setup_logging

router = APIRouter()


# ==== Models ====
class BlockInput(BaseModel):
    ip: str


# ==== Request context ====
class RequestScope:
    """Deadline and disconnect tracking for one request.

    Store calls run in the threadpool one at a time; before each call the
    scope checks whether the client is gone or the deadline has passed, and
    caps the store's lock wait by the time that is left.
    """

    def __init__(self, request: Request, store: BlocklistStore, timeout: float):
        self.request = request
        self.store = store
        self.deadline = time.monotonic() + timeout

    def remaining(self) -> float:
        return self.deadline - time.monotonic()

    async def call(self, func, *args):
        if await self.request.is_disconnected():
            raise RequestCancelledError()
        remaining = self.remaining()
        if remaining <= 0:
            raise RequestTimeoutError()
        timeout = min(self.store.lock_timeout, remaining)
        return await run_in_threadpool(func, *args, timeout=timeout)


def get_store(request: Request) -> BlocklistStore:
    return request.app.state.store


def get_scope(request: Request, store: BlocklistStore = Depends(get_store)) -> RequestScope:
    return RequestScope(request, store, request.app.state.settings.request_timeout)


# ==== Routes ====
@router.get("/")
def root(request: Request):
    return {"message": f"Welcome to {request.app.state.settings.app_name} API"}


@router.get("/blocklist")
async def list_blocklist(scope: RequestScope = Depends(get_scope)):
    snapshot = await scope.call(scope.store.list)
    return snapshot.addresses()


@router.get("/blocklist/entries")
async def list_blocklist_entries(scope: RequestScope = Depends(get_scope)):
    snapshot = await scope.call(scope.store.list)
    return {
        "version": snapshot.version,
        "entries": [entry.to_dict() for entry in snapshot],
    }


@router.post("/block")
async def block_ip(data: BlockInput, scope: RequestScope = Depends(get_scope)):
    entry, created = await scope.call(scope.store.add, data.ip)
    return JSONResponse(
        status_code=201 if created else 200,
        content={**entry.to_dict(), "created": created},
    )


@router.get("/block/{ip:path}")
async def get_blocked_ip(ip: str, scope: RequestScope = Depends(get_scope)):
    entry = await scope.call(scope.store.get, ip)
    return entry.to_dict()


@router.delete("/block/{ip:path}")
async def unblock_ip(ip: str, scope: RequestScope = Depends(get_scope)):
    entry = await scope.call(scope.store.remove, ip)
    return {**entry.to_dict(), "removed": True}


# ==== Error handlers ====
async def blocklist_error_handler(request: Request, exc: BlocklistError):
    if isinstance(exc, RequestCancelledError):
        logger.info("{} {} abandoned: client disconnected", request.method, request.url.path)
    elif exc.kind is ErrorKind.INTERNAL_ERROR:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.debug("Rejected request body on {}: {}", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={
            "error": ErrorKind.INVALID_ADDRESS.value,
            "message": "Request body must be a JSON object with an 'ip' string",
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": ErrorKind.INTERNAL_ERROR.value, "message": "Internal server error"},
    )


# ==== App ====
def create_app(settings: Settings | None = None, store: BlocklistStore | None = None) -> FastAPI:
    settings = settings or get_settings()

    if store is None:
        store = BlocklistStore(lock_timeout=settings.lock_timeout)
    if settings.initial_blocklist:
        store.extend(settings.initial_blocklist)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.store = store
    app.include_router(router)
    app.add_exception_handler(BlocklistError, blocklist_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    logger.info("{} ready with {} blocked IP(s)", settings.app_name, len(store))
    return app


def run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
