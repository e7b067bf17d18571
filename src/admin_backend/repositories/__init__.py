"""
Repository layer: direct database access with timestamps, defaults and
referential checks applied in one place.
"""

from .base import BaseRepository, RepositoryError, NotFoundError, DuplicateError, ReferencedError
from .user import UserRepository
from .dept import DeptRepository
from .role import RoleRepository
from .menu import MenuRepository
from .data_scope import DataScopeRepository, DataRuleRepository
from .system import ConfigRepository, DictTypeRepository, DictDataRepository, NoticeRepository

__all__ = [
    'BaseRepository',
    'RepositoryError',
    'NotFoundError',
    'DuplicateError',
    'ReferencedError',
    'UserRepository',
    'DeptRepository',
    'RoleRepository',
    'MenuRepository',
    'DataScopeRepository',
    'DataRuleRepository',
    'ConfigRepository',
    'DictTypeRepository',
    'DictDataRepository',
    'NoticeRepository',
]
