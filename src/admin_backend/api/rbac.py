from typing import Annotated, List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from admin_backend.api.auth import requires
from admin_backend.app_state import App, get_app
from admin_backend.database import get_db
from admin_backend.interface.base import ResponseModel, response_ok
from admin_backend.interface.data_scopes import DataScopeRulesUpdate
from admin_backend.interface.roles import RoleDataScopeUpdate, RoleGet, RoleMenusUpdate, RoleScopesUpdate
from admin_backend.interface.users import UserGet, UserRolesUpdate
from admin_backend.permissions.principal import Principal
from admin_backend.repositories import RoleRepository, UserRepository
from admin_backend.services.rbac import RbacBindingService

rbac_router = APIRouter(prefix="/api/v1/sys", tags=["rbac"])


def get_binding_service(app: Annotated[App, Depends(get_app)], db: Session = Depends(get_db)) -> RbacBindingService:
    return RbacBindingService(db, app.permission_cache)


@rbac_router.put("/users/{id:int}/roles", response_model=ResponseModel[UserGet])
async def update_user_roles(id: int, body: UserRolesUpdate,
                            principal: Annotated[Principal, Depends(requires("sys:user:role:edit"))],
                            service: Annotated[RbacBindingService, Depends(get_binding_service)]):
    user = await service.set_user_roles(id, body.roles)
    return response_ok(UserGet.model_validate(user))


@rbac_router.put("/roles/{id:int}/menus", response_model=ResponseModel[RoleGet])
async def update_role_menus(id: int, body: RoleMenusUpdate,
                            principal: Annotated[Principal, Depends(requires("sys:role:menu:edit"))],
                            service: Annotated[RbacBindingService, Depends(get_binding_service)]):
    role = await service.set_role_menus(id, body.menus)
    return response_ok(RoleGet.model_validate(role))


@rbac_router.put("/roles/{id:int}/scopes", response_model=ResponseModel[RoleGet])
async def update_role_scopes(id: int, body: RoleScopesUpdate,
                             principal: Annotated[Principal, Depends(requires("sys:role:scope:edit"))],
                             service: Annotated[RbacBindingService, Depends(get_binding_service)]):
    role = await service.set_role_scopes(id, body.scopes)
    return response_ok(RoleGet.model_validate(role))


@rbac_router.put("/roles/{id:int}/data-scope", response_model=ResponseModel[RoleGet])
async def update_role_data_scope(id: int, body: RoleDataScopeUpdate,
                                 principal: Annotated[Principal, Depends(requires("sys:role:scope:edit"))],
                                 service: Annotated[RbacBindingService, Depends(get_binding_service)]):
    role = await service.set_role_data_scope(id, body.data_scope, body.dept_ids)
    return response_ok(RoleGet.model_validate(role))


@rbac_router.put("/data-scopes/{id:int}/rules", response_model=ResponseModel)
async def update_data_scope_rules(id: int, body: DataScopeRulesUpdate,
                                  principal: Annotated[Principal, Depends(requires("sys:data-scope:rule:edit"))],
                                  service: Annotated[RbacBindingService, Depends(get_binding_service)]):
    scope = await service.set_scope_rules(id, body.rules)
    return response_ok({"id": scope.id, "rules": sorted(rule.id for rule in scope.rules)})


@rbac_router.get("/users/{id:int}/roles", response_model=ResponseModel[List[int]])
async def get_user_roles(id: int, principal: Annotated[Principal, Depends(requires("sys:user:get"))],
                         db: Session = Depends(get_db)):
    users = UserRepository(db)
    users.get_by_id(id)
    return response_ok(sorted(users.role_ids(id)))


@rbac_router.get("/roles/{id:int}/menus", response_model=ResponseModel[List[int]])
async def get_role_menus(id: int, principal: Annotated[Principal, Depends(requires("sys:role:get"))],
                         db: Session = Depends(get_db)):
    role = RoleRepository(db).get_by_id(id)
    return response_ok(sorted(menu.id for menu in role.menus))
