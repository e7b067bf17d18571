from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.orm import relationship

from .base import Base


class Dept(Base):
    __tablename__ = 'sys_dept'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False)
    parent_id = Column(ForeignKey('sys_dept.id', ondelete='SET NULL'), index=True)
    sort = Column(Integer, nullable=False, server_default=text("0"))
    leader = Column(String(32))
    phone = Column(String(16))
    email = Column(String(64))
    status = Column(Integer, nullable=False, server_default=text("1"))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    parent = relationship('Dept', remote_side=[id])
    users = relationship('User', back_populates='dept')


class User(Base):
    __tablename__ = 'sys_user'

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(64), nullable=False, unique=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    nickname = Column(String(64), nullable=False)
    password = Column(String(255), nullable=False)
    email = Column(String(128), unique=True)
    phone = Column(String(16))
    avatar = Column(String(255))
    status = Column(Integer, nullable=False, server_default=text("1"))
    is_superuser = Column(Boolean, nullable=False, server_default=text("false"))
    is_staff = Column(Boolean, nullable=False, server_default=text("false"))
    is_multi_login = Column(Boolean, nullable=False, server_default=text("false"))
    dept_id = Column(ForeignKey('sys_dept.id', ondelete='SET NULL'), index=True)
    del_flag = Column(Integer, nullable=False, server_default=text("0"))
    join_time = Column(DateTime, nullable=False)
    last_login_time = Column(DateTime)
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    dept = relationship('Dept', back_populates='users')
    roles = relationship('Role', secondary='sys_user_role', back_populates='users')

    @property
    def is_active(self) -> bool:
        return self.status == 1 and self.del_flag == 0
