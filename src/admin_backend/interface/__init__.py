from admin_backend.interface.configs import ConfigInterface
from admin_backend.interface.data_rules import DataRuleInterface
from admin_backend.interface.data_scopes import DataScopeInterface
from admin_backend.interface.depts import DeptInterface
from admin_backend.interface.dicts import DictDataInterface, DictTypeInterface
from admin_backend.interface.menus import MenuInterface
from admin_backend.interface.notices import NoticeInterface
from admin_backend.interface.roles import RoleInterface
from admin_backend.interface.users import UserInterface

CRUD_INTERFACES = [
    UserInterface,
    RoleInterface,
    MenuInterface,
    DeptInterface,
    DataScopeInterface,
    DataRuleInterface,
    ConfigInterface,
    DictTypeInterface,
    DictDataInterface,
    NoticeInterface,
]
