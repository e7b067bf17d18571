import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from admin_backend.api.auth import get_current_principal, requires
from admin_backend.api.crud import update_db
from admin_backend.api.exceptions import NotFoundException
from admin_backend.app_state import App, get_app
from admin_backend.database import get_db
from admin_backend.interface.base import ResponseModel, response_ok
from admin_backend.interface.users import UserGet, UserInterface, UserPasswordReset, UserStatusUpdate
from admin_backend.permissions.principal import Principal
from admin_backend.repositories import UserRepository

logger = logging.getLogger(__name__)

user_router = APIRouter(prefix="/api/v1/sys/users", tags=["users"])


@user_router.put("/{id:int}/password", response_model=ResponseModel)
async def reset_password(id: int, body: UserPasswordReset, app: Annotated[App, Depends(get_app)],
                         principal: Annotated[Principal, Depends(requires("sys:user:password:reset"))],
                         db: Session = Depends(get_db)):
    users = UserRepository(db)
    user = users.get_by_id(id)
    if not app.data_scope.can_edit(db, principal, users, user):
        raise NotFoundException(detail=f"User with id [{id}] not found")

    digest = await run_in_threadpool(app.hasher.hash, body.password)
    users.update(id, {"password": digest})

    # a new password ends every session opened with the old one
    await app.sessions.invalidate_user(id)
    logger.info(f"User {principal.user_id} reset the password of user {id}")
    return response_ok()


@user_router.put("/{id:int}/status", response_model=ResponseModel[UserGet])
async def update_status(id: int, body: UserStatusUpdate, app: Annotated[App, Depends(get_app)],
                        principal: Annotated[Principal, Depends(get_current_principal)],
                        db: Session = Depends(get_db)):
    return response_ok(await update_db(app, principal, db, id, body, UserInterface))
