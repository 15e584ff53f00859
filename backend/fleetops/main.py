import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fleetops.core.config import Settings, get_settings
from fleetops.core.logging import configure_logging
from fleetops.db.memory import MemoryStore
from fleetops.db.store import DuplicateRecord, NotFound, Store, StoreTransactionFailed
from fleetops.dispatch.engine import DispatchEngine
from fleetops.dispatch.errors import DispatchError
from fleetops.realtime.feed import TripFeed
from fleetops.routers import analytics, auth, drivers, trips, vehicles, ws
from fleetops.services.fleet import StatusChangeRejected

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    if settings.store_backend == "memory":
        logger.warning("using in-memory store; data is lost on restart")
        return MemoryStore()

    if not settings.mongo_url:
        raise RuntimeError("MONGO_URL not set. Create backend/.env with MONGO_URL=...")

    from fleetops.db.mongo import MongoStore, create_client

    return MongoStore(create_client(settings.mongo_url), settings.mongo_db)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DispatchError)
    async def dispatch_error(request: Request, exc: DispatchError):
        return _error(400, exc.message)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return _error(404, str(exc))

    @app.exception_handler(DuplicateRecord)
    async def duplicate(request: Request, exc: DuplicateRecord):
        return _error(409, str(exc))

    @app.exception_handler(StatusChangeRejected)
    async def status_rejected(request: Request, exc: StatusChangeRejected):
        return _error(409, exc.message)

    @app.exception_handler(StoreTransactionFailed)
    async def store_failed(request: Request, exc: StoreTransactionFailed):
        logger.error("store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "Internal Server Error")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


def create_app(store: Optional[Store] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = store or build_store(settings)

    app = FastAPI(title="FleetOps")
    app.state.store = store
    app.state.engine = DispatchEngine(store)
    app.state.feed = TripFeed()

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.on_event("startup")
    async def startup():
        await app.state.store.ensure_indexes()

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.store.close()

    @app.get("/")
    async def root():
        return {"message": "API is running. Go to /docs"}

    @app.get("/health")
    async def health():
        return {"ok": True}

    for module in (auth, vehicles, drivers, trips, analytics):
        app.include_router(module.router, prefix="/api")
    app.include_router(ws.router)

    return app
