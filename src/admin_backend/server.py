import logging
from contextlib import asynccontextmanager
from typing import Optional

from aiocache import BaseCache
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from admin_backend.api.api_builder import CrudRouter
from admin_backend.api.auth import AuthGatewayMiddleware
from admin_backend.api.exceptions import register_exception_handlers
from admin_backend.api.login import auth_router
from admin_backend.api.monitor import monitor_router
from admin_backend.api.rbac import rbac_router
from admin_backend.api.system import health_router, system_router
from admin_backend.api.users import user_router
from admin_backend.app_state import App
from admin_backend.database import build_engine, build_session_factory, init_schema
from admin_backend.interface import CRUD_INTERFACES
from admin_backend.redis import build_redis_client
from admin_backend.redis_cache import build_cache
from admin_backend.settings import BackendSettings, settings as default_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state: App = app.state.app
    logging.basicConfig(
        level=state.settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if not state.settings.is_production:
        init_schema(state.session_factory.kw["bind"])

    logger.info(f"Admin backend started ({state.settings.DEBUG_MODE})")
    yield

    await state.close()


def create_app(settings: Optional[BackendSettings] = None, *, session_factory: Optional[sessionmaker] = None,
               redis=None, cache: Optional[BaseCache] = None) -> FastAPI:
    """
    Build the FastAPI application and its ``App`` state.

    Every handle left out is built from ``settings``; tests pass an
    in-memory session factory and fake stores instead.
    """
    settings = settings or default_settings

    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings))
    if redis is None:
        redis = build_redis_client(settings)
    if cache is None:
        cache = build_cache(settings)

    app = FastAPI(title="admin-backend", lifespan=lifespan)
    app.state.app = App(settings, session_factory, redis, cache)

    register_exception_handlers(app)

    app.add_middleware(AuthGatewayMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(monitor_router)
    app.include_router(system_router)
    app.include_router(rbac_router)
    app.include_router(user_router)

    for interface in CRUD_INTERFACES:
        CrudRouter(interface).register_routes(app)

    return app
