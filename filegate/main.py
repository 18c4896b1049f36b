import argparse
import logging
from functools import partial

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from filegate.blob import BlobStore
from filegate.core.config import Settings, get_settings
from filegate.core.errors import register_exception_handlers
from filegate.core.log import configure_logging
from filegate.models.database import Base, make_engine, make_session_factory
from filegate.routers import auth, files
from filegate.services.auth import AuthService
from filegate.services.geo import ip_to_location
from filegate.services.storage import StorageService
from filegate.stores.auth import CredentialStore, SessionStore
from filegate.stores.objects import ObjectStore

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, blob: BlobStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    session_factory = make_session_factory(engine)

    locate = None
    if settings.geolocation_enabled:
        locate = partial(
            ip_to_location,
            url_template=settings.geolocation_url,
            timeout=settings.geolocation_timeout,
        )

    app = FastAPI(title="filegate")
    app.state.settings = settings
    app.state.engine = engine
    app.state.auth = AuthService(
        CredentialStore(session_factory),
        SessionStore(session_factory),
        locate=locate,
    )
    app.state.storage = StorageService(
        ObjectStore(session_factory),
        blob or BlobStore.from_settings(settings),
        multipart_threshold=settings.multipart_threshold,
        multipart_part_size=settings.multipart_part_size,
        id_length=settings.object_id_length,
    )

    register_exception_handlers(app)

    # include our routers
    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(files.anonymous_router)
    if settings.dev:
        app.include_router(auth.dev_router)
        app.include_router(files.dev_router)

    @app.get("/ping", response_class=PlainTextResponse)
    def ping():
        return "pong"

    logger.info(
        "app_created database=%s dev=%s",
        engine.url.render_as_string(hide_password=True),
        settings.dev,
    )
    return app


def run() -> None:
    parser = argparse.ArgumentParser(description="filegate storage gateway")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000, help="The server port")
    args = parser.parse_args()

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    run()
