from typing import List, Optional
from sqlalchemy.orm import Session

from .base import BaseRepository, ReferencedError
from ..model.system import DictData, DictType, Notice, SysConfig


class ConfigRepository(BaseRepository[SysConfig]):

    defaults = {"is_frontend": False}
    unique_columns = ("key",)

    def __init__(self, db: Session):
        super().__init__(db, SysConfig)

    def get_by_key(self, key: str) -> Optional[SysConfig]:
        return self.query().filter(SysConfig.key == key).first()


class DictTypeRepository(BaseRepository[DictType]):

    defaults = {"status": 1}
    unique_columns = ("code",)

    def __init__(self, db: Session):
        super().__init__(db, DictType)

    def get_by_code(self, code: str) -> Optional[DictType]:
        return self.query().filter(DictType.code == code).first()

    def ensure_deletable(self, entity: DictType):
        if self.db.query(DictData.id).filter(DictData.type_id == entity.id).first() is not None:
            raise ReferencedError("DictType", entity.id, "dict data")


class DictDataRepository(BaseRepository[DictData]):

    defaults = {"sort": 0, "status": 1}

    def __init__(self, db: Session):
        super().__init__(db, DictData)

    def list_by_type_code(self, code: str) -> List[DictData]:
        return (
            self.query()
            .join(DictType, DictType.id == DictData.type_id)
            .filter(DictType.code == code, DictData.status == 1)
            .order_by(DictData.sort, DictData.id)
            .all()
        )


class NoticeRepository(BaseRepository[Notice]):

    defaults = {"type": 0, "status": 1}
    dept_column = "dept_id"
    user_column = "user_id"

    def __init__(self, db: Session):
        super().__init__(db, Notice)
