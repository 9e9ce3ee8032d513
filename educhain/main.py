
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from educhain.config import Settings, settings as default_settings
from educhain.db.session import make_engine, make_session_factory, init_db
from educhain.ledger.client import LedgerError, SuiClient
from educhain.middleware.auth import make_session_auth
from educhain.auth.routes import router as auth_router
from educhain.courses.routes import router as courses_router
from educhain.certs.routes import router as certs_router
from educhain.web.routes_ui import router as ui_router
from educhain.web.templating import STATIC_DIR

logger = logging.getLogger(__name__)

def create_app(settings: Settings | None = None, session_factory=None, ledger=None, exclude=None) -> FastAPI:
    settings = settings or default_settings
    engine = None
    if session_factory is None:
        engine = make_engine(settings.database_url)
        session_factory = make_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            init_db(engine)
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.ledger = ledger or SuiClient(settings.sui_rpc_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.middleware("http")(make_session_auth(exclude))

    app.include_router(ui_router)
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(certs_router)

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError):
        logger.exception("ledger error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    return app

def run():
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(), host=default_settings.host, port=default_settings.port)

if __name__ == "__main__":
    run()
