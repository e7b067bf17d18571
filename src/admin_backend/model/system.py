from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import relationship

from .base import Base


class SysConfig(Base):
    __tablename__ = 'sys_config'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False)
    type = Column(String(32))
    key = Column(String(64), nullable=False, unique=True)
    value = Column(Text, nullable=False)
    is_frontend = Column(Boolean, nullable=False, server_default=text("false"))
    remark = Column(String(255))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)


class DictType(Base):
    __tablename__ = 'sys_dict_type'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False)
    code = Column(String(32), nullable=False, unique=True)
    status = Column(Integer, nullable=False, server_default=text("1"))
    remark = Column(String(255))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    datas = relationship('DictData', back_populates='type')


class DictData(Base):
    __tablename__ = 'sys_dict_data'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type_id = Column(ForeignKey('sys_dict_type.id', ondelete='RESTRICT'), nullable=False, index=True)
    label = Column(String(32), nullable=False)
    value = Column(String(32), nullable=False)
    sort = Column(Integer, nullable=False, server_default=text("0"))
    status = Column(Integer, nullable=False, server_default=text("1"))
    remark = Column(String(255))
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)

    type = relationship('DictType', back_populates='datas')


class Notice(Base):
    __tablename__ = 'sys_notice'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(50), nullable=False)
    type = Column(Integer, nullable=False, server_default=text("0"))
    status = Column(Integer, nullable=False, server_default=text("1"))
    content = Column(Text, nullable=False)
    user_id = Column(ForeignKey('sys_user.id', ondelete='SET NULL'), index=True)
    dept_id = Column(ForeignKey('sys_dept.id', ondelete='SET NULL'), index=True)
    created_time = Column(DateTime, nullable=False)
    updated_time = Column(DateTime)
