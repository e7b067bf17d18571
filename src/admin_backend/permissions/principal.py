from enum import Enum
from typing import Iterable, List, Optional, Set
from pydantic import BaseModel, Field

from admin_backend.api.exceptions import ForbiddenException

ALL_PERMISSIONS = "*"


class ScopeMode(str, Enum):
    ALL = "all"
    CUSTOM = "custom"
    DEPT = "dept"
    DEPT_AND_CHILDREN = "dept_and_children"
    SELF = "self"


class AuthContext(BaseModel):
    """Identity attached to a request by the auth gateway."""
    user_id: int
    session_uuid: str


class RoleScope(BaseModel):
    """Data scope contributed by one role"""
    role_id: int
    mode: ScopeMode
    custom_dept_ids: List[int] = Field(default_factory=list)
    filter_scopes: bool = True


class ScopeFilter(BaseModel):
    """
    Row filter produced by the data-scope engine.

    Repositories translate it into predicates over their own dept/user
    columns. ``view_all`` means no predicate at all; empty id sets fall back
    to matching ``fallback_user_id`` only.
    """
    view_all: bool = False
    dept_ids: Set[int] = Field(default_factory=set)
    user_ids: Set[int] = Field(default_factory=set)
    fallback_user_id: Optional[int] = None

    @classmethod
    def unrestricted(cls) -> "ScopeFilter":
        return cls(view_all=True)

    @property
    def is_empty(self) -> bool:
        return not self.dept_ids and not self.user_ids

    def admits(self, dept_id: Optional[int], user_id: Optional[int]) -> bool:
        """Whether a row with the given dept/user would pass the filter"""
        if self.view_all:
            return True
        if self.is_empty:
            return user_id is not None and user_id == self.fallback_user_id
        return (dept_id is not None and dept_id in self.dept_ids) or \
            (user_id is not None and user_id in self.user_ids)


class Principal(BaseModel):
    """Resolved permission set of a user"""

    user_id: int
    is_superuser: bool = False
    dept_id: Optional[int] = None
    role_ids: List[int] = Field(default_factory=list)
    permission_codes: Set[str] = Field(default_factory=set)
    scopes: List[RoleScope] = Field(default_factory=list)

    def has(self, code: str) -> bool:
        return self.is_superuser or ALL_PERMISSIONS in self.permission_codes or code in self.permission_codes

    def has_any(self, codes: Iterable[str]) -> bool:
        return any(self.has(code) for code in codes)

    def has_all(self, codes: Iterable[str]) -> bool:
        return all(self.has(code) for code in codes)

    @property
    def view_all(self) -> bool:
        return self.is_superuser or any(scope.mode == ScopeMode.ALL for scope in self.scopes)

    @property
    def filter_scopes_enabled(self) -> bool:
        """False only when every role of the user opts out of row filtering"""
        if self.is_superuser:
            return False
        if not self.scopes:
            return True
        return any(scope.filter_scopes for scope in self.scopes)


def require(principal: Principal, code: str):
    if not principal.has(code):
        raise ForbiddenException(f"Permission denied: {code}")

def require_any(principal: Principal, *codes: str):
    if not principal.has_any(codes):
        raise ForbiddenException(f"Permission denied: one of {', '.join(codes)}")

def require_all(principal: Principal, *codes: str):
    missing = [code for code in codes if not principal.has(code)]
    if missing:
        raise ForbiddenException(f"Permission denied: {', '.join(missing)}")

def require_superuser(principal: Principal):
    if not principal.is_superuser:
        raise ForbiddenException("Superuser required")
