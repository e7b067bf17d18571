from typing import Annotated, Dict, List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from admin_backend.api.auth import get_auth_context, requires
from admin_backend.app_state import App, get_app
from admin_backend.database import get_db
from admin_backend.interface.base import ResponseModel, response_ok
from admin_backend.permissions.principal import AuthContext, Principal
from admin_backend.services.system import SystemDataService

system_router = APIRouter(prefix="/api/v1/sys", tags=["system"])
health_router = APIRouter(tags=["health"])


def get_system_data(app: Annotated[App, Depends(get_app)], db: Session = Depends(get_db)) -> SystemDataService:
    return SystemDataService(db, app.cache, app.settings)


@system_router.get("/configs/keys/{key}", response_model=ResponseModel[Dict])
async def config_by_key(key: str, auth: Annotated[AuthContext, Depends(get_auth_context)],
                        service: Annotated[SystemDataService, Depends(get_system_data)]):
    return response_ok(await service.config_by_key(key))


@system_router.get("/dict-datas/types/{code}", response_model=ResponseModel[List[Dict]])
async def dict_by_code(code: str, auth: Annotated[AuthContext, Depends(get_auth_context)],
                       service: Annotated[SystemDataService, Depends(get_system_data)]):
    return response_ok(await service.dict_by_code(code))


@system_router.delete("/caches", response_model=ResponseModel)
async def clear_caches(principal: Annotated[Principal, Depends(requires("sys:cache:del"))],
                       service: Annotated[SystemDataService, Depends(get_system_data)]):
    await service.refresh_all()
    return response_ok()


@system_router.get("/data-rules/models", response_model=ResponseModel[List[str]])
async def data_rule_models(app: Annotated[App, Depends(get_app)],
                           principal: Annotated[Principal, Depends(requires("sys:data-rule:list"))]):
    return response_ok(app.rules.available_models())


@system_router.get("/data-rules/models/{name}/columns", response_model=ResponseModel[List[Dict[str, str]]])
async def data_rule_columns(name: str, app: Annotated[App, Depends(get_app)],
                            principal: Annotated[Principal, Depends(requires("sys:data-rule:list"))]):
    return response_ok(app.rules.available_columns(name))


@health_router.get("/health", response_model=ResponseModel[Dict[str, str]])
async def health():
    return response_ok({"status": "ok"})


@health_router.head("/", status_code=status.HTTP_204_NO_CONTENT)
async def head_root():
    return Response(status_code=status.HTTP_204_NO_CONTENT)
