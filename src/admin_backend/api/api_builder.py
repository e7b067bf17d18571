from typing import Annotated, Optional
from fastapi import APIRouter, Depends, FastAPI, Request, status
from sqlalchemy.orm import Session

from admin_backend.api.auth import get_current_principal
from admin_backend.api.crud import create_db, delete_db, get_id_db, list_db, update_db
from admin_backend.app_state import App, get_app
from admin_backend.database import get_db
from admin_backend.interface.base import EntityInterface, Page, ResponseModel, build_page, response_ok
from admin_backend.permissions.principal import Principal


class CrudRouter:

    id_type = "id"

    path: str
    dto: EntityInterface

    def __init__(self, dto, endpoint: Optional[str] = None):
        self.dto = dto
        if endpoint is None:
            self.path = self.dto.endpoint
        else:
            self.path = endpoint

        self.router = APIRouter()

    def create(self):
        async def route(app: Annotated[App, Depends(get_app)], principal: Annotated[Principal, Depends(get_current_principal)],
                        entity: self.dto.create, db: Session = Depends(get_db)) -> ResponseModel[self.dto.get]:
            return response_ok(await create_db(app, principal, db, entity, self.dto))
        return route

    def get(self):
        async def route(app: Annotated[App, Depends(get_app)], principal: Annotated[Principal, Depends(get_current_principal)],
                        id: int, db: Session = Depends(get_db)) -> ResponseModel[self.dto.get]:
            return response_ok(await get_id_db(app, principal, db, id, self.dto))
        return route

    def list(self):
        async def route(request: Request, app: Annotated[App, Depends(get_app)],
                        principal: Annotated[Principal, Depends(get_current_principal)],
                        params: self.dto.query = Depends(), db: Session = Depends(get_db)) -> ResponseModel[Page[self.dto.list]]:
            items, total = await list_db(app, principal, db, params, self.dto)
            return response_ok(build_page(request, items, total, params))
        return route

    def update(self):
        async def route(app: Annotated[App, Depends(get_app)], principal: Annotated[Principal, Depends(get_current_principal)],
                        id: int, entity: self.dto.update, db: Session = Depends(get_db)) -> ResponseModel[self.dto.get]:
            return response_ok(await update_db(app, principal, db, id, entity, self.dto))
        return route

    def delete(self):
        async def route(app: Annotated[App, Depends(get_app)], principal: Annotated[Principal, Depends(get_current_principal)],
                        id: int, db: Session = Depends(get_db)) -> ResponseModel:
            await delete_db(app, principal, db, id, self.dto)
            return response_ok()
        return route

    def register_routes(self, app: FastAPI, prefix: str = "/api/v1/sys"):

        scope_name = self.path.replace("/", "").replace("-", " ")

        self.router.add_api_route("", self.create(), methods=["POST"],
                    status_code=status.HTTP_200_OK, name=f"{self.create.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}:int}}", self.get(), methods=["GET"],
                    status_code=status.HTTP_200_OK, name=f"{self.get.__name__} {scope_name.capitalize()}")
        self.router.add_api_route("", self.list(), methods=["GET"],
                    status_code=status.HTTP_200_OK, name=f"{self.list.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}:int}}", self.update(), methods=["PUT"],
                    status_code=status.HTTP_200_OK, name=f"{self.update.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}:int}}", self.delete(), methods=["DELETE"],
                    status_code=status.HTTP_200_OK, name=f"{self.delete.__name__} {scope_name.capitalize()}")

        app.include_router(
            self.router,
            prefix=f"{prefix}/{self.path}",
            tags=[scope_name]
        )

        return self
