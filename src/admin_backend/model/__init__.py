from .base import Base, metadata
from .auth import Dept, User
from .role import Role, Menu, DataScope, DataRule, UserRole, RoleMenu, RoleDept, RoleDataScope, DataScopeRule
from .system import SysConfig, DictType, DictData, Notice

__all__ = [
    'Base',
    'metadata',
    'Dept',
    'User',
    'Role',
    'Menu',
    'DataScope',
    'DataRule',
    'UserRole',
    'RoleMenu',
    'RoleDept',
    'RoleDataScope',
    'DataScopeRule',
    'SysConfig',
    'DictType',
    'DictData',
    'Notice',
]
