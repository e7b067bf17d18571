from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, text
from sqlalchemy.orm import relationship

from .base import Base, metadata

UserRole = Table(
    'sys_user_role', metadata,
    Column('user_id', ForeignKey('sys_user.id', ondelete='CASCADE'), primary_key=True),
    Column('role_id', ForeignKey('sys_role.id', ondelete='CASCADE'), primary_key=True),
)

RoleMenu = Table(
    'sys_role_menu', metadata,
    Column('role_id', ForeignKey('sys_role.id', ondelete='CASCADE'), primary_key=True),
    Column('menu_id', ForeignKey('sys_menu.id', ondelete='CASCADE'), primary_key=True),
)

RoleDept = Table(
    'sys_role_dept', metadata,
    Column('role_id', ForeignKey('sys_role.id', ondelete='CASCADE'), primary_key=True),
    Column('dept_id', ForeignKey('sys_dept.id', ondelete='CASCADE'), primary_key=True),
)

RoleDataScope = Table(
    'sys_role_data_scope', metadata,
    Column('role_id', ForeignKey('sys_role.id', ondelete='CASCADE'), primary_key=True),
    Column('data_scope_id', ForeignKey('sys_data_scope.id', ondelete='CASCADE'), primary_key=True),
)

DataScopeRule = Table(
    'sys_data_scope_rule', metadata,
    Column('data_scope_id', ForeignKey('sys_data_scope.id', ondelete='CASCADE'), primary_key=True),
    Column('data_rule_id', ForeignKey('sys_data_rule.id', ondelete='CASCADE'), primary_key=True),
)


class Role(Base):
    __tablename__ = 'sys_role'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False, unique=True)
    code = Column(String(64), nullable=False, unique=True)
    sort = Column(Integer, nullable=False, server_default=text("0"))
    status = Column(Integer, nullable=False, server_default=text("1"))
    # one of all, custom, dept, dept_and_children, self
    data_scope = Column(String(32), nullable=False, server_default=text("'self'"))
    is_filter_scopes = Column(Boolean, nullable=False, server_default=text("true"))
    remark = Column(String(255))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    users = relationship('User', secondary=UserRole, back_populates='roles')
    menus = relationship('Menu', secondary=RoleMenu, back_populates='roles')
    depts = relationship('Dept', secondary=RoleDept)
    scopes = relationship('DataScope', secondary=RoleDataScope, back_populates='roles')


class Menu(Base):
    __tablename__ = 'sys_menu'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(64), nullable=False)
    name = Column(String(64))
    path = Column(String(200))
    parent_id = Column(ForeignKey('sys_menu.id', ondelete='SET NULL'), index=True)
    sort = Column(Integer, nullable=False, server_default=text("0"))
    icon = Column(String(100))
    # 0 directory, 1 menu, 2 button
    type = Column(Integer, nullable=False, server_default=text("0"))
    perms = Column(String(255))
    status = Column(Integer, nullable=False, server_default=text("1"))
    display = Column(Integer, nullable=False, server_default=text("1"))
    remark = Column(String(255))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    parent = relationship('Menu', remote_side=[id])
    roles = relationship('Role', secondary=RoleMenu, back_populates='menus')


class DataScope(Base):
    __tablename__ = 'sys_data_scope'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    status = Column(Integer, nullable=False, server_default=text("1"))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    roles = relationship('Role', secondary=RoleDataScope, back_populates='scopes')
    rules = relationship('DataRule', secondary=DataScopeRule, back_populates='scopes')


class DataRule(Base):
    __tablename__ = 'sys_data_rule'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    model = Column(String(64), nullable=False)
    column = Column(String(64), nullable=False)
    combinator = Column(String(8), nullable=False, server_default=text("'AND'"))
    operator = Column(String(8), nullable=False)
    value = Column(String(255), nullable=False)
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    scopes = relationship('DataScope', secondary=DataScopeRule, back_populates='rules')
