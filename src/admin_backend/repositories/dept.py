from collections import defaultdict
from typing import Dict, List, Optional, Set
from sqlalchemy.orm import Session

from .base import BaseRepository, ReferencedError
from ..model.auth import Dept, User


class DeptRepository(BaseRepository[Dept]):

    defaults = {"sort": 0, "status": 1}
    dept_column = "id"

    def __init__(self, db: Session):
        super().__init__(db, Dept)

    def children_map(self) -> Dict[Optional[int], List[int]]:
        children: Dict[Optional[int], List[int]] = defaultdict(list)
        for dept_id, parent_id in self.db.query(Dept.id, Dept.parent_id).all():
            children[parent_id].append(dept_id)
        return children

    def descendant_ids(self, dept_id: int) -> Set[int]:
        """``dept_id`` plus every department below it in the tree"""
        children = self.children_map()
        result = {dept_id}
        pending = [dept_id]
        while pending:
            current = pending.pop()
            for child in children.get(current, []):
                if child not in result:
                    result.add(child)
                    pending.append(child)
        return result

    def ensure_deletable(self, entity: Dept):
        if self.db.query(Dept.id).filter(Dept.parent_id == entity.id).first() is not None:
            raise ReferencedError("Dept", entity.id, "child departments")
        if self.db.query(User.id).filter(User.dept_id == entity.id, User.del_flag == 0).first() is not None:
            raise ReferencedError("Dept", entity.id, "users")

    def ensure_parent(self, dept_id: Optional[int], parent_id: Optional[int]):
        """Reject parents that do not exist or would create a cycle."""
        if parent_id is None:
            return
        self.get_by_id(parent_id)
        if dept_id is not None and parent_id in self.descendant_ids(dept_id):
            raise ReferencedError("Dept", dept_id, f"its own subtree (parent {parent_id})")
