"""
Base repository pattern implementation.

Repositories are the only place that writes rows: they stamp timestamps,
fill defaults and check referential rules before a delete, so models stay
free of save hooks. Each repository also knows how to narrow a query over
its own table with a ``ScopeFilter``.
"""

from abc import ABC
from datetime import datetime
from typing import TYPE_CHECKING, TypeVar, Generic, List, Optional, Dict, Any, Tuple, Type
from sqlalchemy import false, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

if TYPE_CHECKING:
    from admin_backend.permissions.principal import ScopeFilter

# Type variable for generic entity type
T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository operations."""
    pass


class NotFoundError(RepositoryError):
    """Exception raised when entity is not found."""
    
    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateError(RepositoryError):
    """Exception raised when attempting to create duplicate entity."""
    
    def __init__(self, entity_type: str, criteria: Dict[str, Any]):
        super().__init__(f"{entity_type} already exists with criteria: {criteria}")
        self.entity_type = entity_type
        self.criteria = criteria


class ReferencedError(RepositoryError):
    """Exception raised when deleting an entity that is still referenced."""

    def __init__(self, entity_type: str, entity_id: Any, referenced_by: str):
        super().__init__(f"{entity_type} with id {entity_id} is still referenced by {referenced_by}")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.referenced_by = referenced_by


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common database operations.
    
    This class implements the repository pattern, providing a clean
    abstraction over SQLAlchemy operations.
    """

    # column values applied on create when the caller leaves them out
    defaults: Dict[str, Any] = {}
    # columns used to apply a ScopeFilter; None when the table has no such column
    dept_column: Optional[str] = None
    user_column: Optional[str] = None
    # columns checked for uniqueness before insert/update
    unique_columns: Tuple[str, ...] = ()

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model class.
        
        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    @staticmethod
    def now() -> datetime:
        return datetime.now().replace(microsecond=0)

    def query(self) -> Query:
        """Base query for reads; soft-deleting repositories narrow it."""
        return self.db.query(self.model)

    def get_by_id(self, entity_id: Any) -> T:
        """
        Get entity by ID.
        
        Args:
            entity_id: Entity identifier
            
        Returns:
            Entity instance
            
        Raises:
            NotFoundError: If entity not found
        """
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise NotFoundError(self.model.__name__, entity_id)
        return entity
    
    def get_by_id_optional(self, entity_id: Any) -> Optional[T]:
        """
        Get entity by ID, returning None if not found.
        
        Args:
            entity_id: Entity identifier
            
        Returns:
            Entity instance or None
        """
        return self.query().filter(
            self.model.id == entity_id
        ).first()

    def get_many(self, entity_ids: List[Any]) -> List[T]:
        """
        Load several entities at once, requiring all of them to exist.

        Raises:
            NotFoundError: For the first id that does not exist
        """
        wanted = list(dict.fromkeys(entity_ids))
        if not wanted:
            return []
        found = {entity.id: entity for entity in self.query().filter(self.model.id.in_(wanted)).all()}
        for entity_id in wanted:
            if entity_id not in found:
                raise NotFoundError(self.model.__name__, entity_id)
        return [found[entity_id] for entity_id in wanted]
    
    def paginate(self, query: Query, page: int, size: int) -> Tuple[List[T], int]:
        """
        Return one page of ``query`` and the total row count.

        Args:
            query: Query to page through
            page: 1-based page number
            size: Page size
        """
        total = query.order_by(None).count()
        items = query.order_by(self.model.id).offset((page - 1) * size).limit(size).all()
        return items, total

    def apply_scope(self, query: Query, scope: Optional["ScopeFilter"]) -> Query:
        """
        Narrow ``query`` to the rows admitted by ``scope``.

        Rows pass when their dept column is in the permitted dept ids or their
        user column is in the permitted user ids. With both id sets empty only
        the caller's own rows pass; a table without a user column then yields
        nothing.
        """
        if scope is None or scope.view_all:
            return query

        dept_col = getattr(self.model, self.dept_column) if self.dept_column else None
        user_col = getattr(self.model, self.user_column) if self.user_column else None

        conditions = []
        if scope.dept_ids and dept_col is not None:
            conditions.append(dept_col.in_(sorted(scope.dept_ids)))
        if scope.user_ids and user_col is not None:
            conditions.append(user_col.in_(sorted(scope.user_ids)))

        if conditions:
            return query.filter(or_(*conditions))
        if user_col is not None and scope.fallback_user_id is not None:
            return query.filter(user_col == scope.fallback_user_id)
        return query.filter(false())

    def scope_values(self, entity: T) -> Tuple[Optional[int], Optional[int]]:
        """(dept id, user id) of a row, as seen by ``apply_scope``"""
        dept_id = getattr(entity, self.dept_column) if self.dept_column else None
        user_id = getattr(entity, self.user_column) if self.user_column else None
        return dept_id, user_id

    def ensure_unique(self, values: Dict[str, Any], exclude_id: Any = None):
        """
        Raise DuplicateError when a unique column value is already taken.

        Args:
            values: Candidate column values
            exclude_id: Id of the row being updated
        """
        for column in self.unique_columns:
            if values.get(column) is None:
                continue
            query = self.db.query(self.model).filter(getattr(self.model, column) == values[column])
            if exclude_id is not None:
                query = query.filter(self.model.id != exclude_id)
            if query.first() is not None:
                raise DuplicateError(self.model.__name__, {column: values[column]})

    def ensure_deletable(self, entity: T):
        """Raise ReferencedError when ``entity`` must not be deleted."""
        pass

    def create(self, values: Dict[str, Any], commit: bool = True) -> T:
        """
        Create a new entity.
        
        Args:
            values: Column values of the new entity
            commit: Commit immediately; otherwise only flush
            
        Returns:
            Created entity with updated fields (e.g., ID)
            
        Raises:
            DuplicateError: If entity violates unique constraints
            RepositoryError: If database operation fails
        """
        data = {**self.defaults, **{k: v for k, v in values.items() if v is not None}}
        self.ensure_unique(data)

        now = self.now()
        if hasattr(self.model, "created_time"):
            data.setdefault("created_time", now)
        if hasattr(self.model, "updated_time"):
            data.setdefault("updated_time", now)

        entity = self.model(**data)
        try:
            self.db.add(entity)
            self._finish(commit)
            self.db.refresh(entity)
            return entity
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(
                self.model.__name__,
                {k: v for k, v in data.items() if k in self.unique_columns} or data
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to create {self.model.__name__}: {str(e)}")
    
    def update(self, entity_id: Any, updates: Dict[str, Any], commit: bool = True) -> T:
        """
        Update an existing entity.
        
        Args:
            entity_id: Entity identifier
            updates: Dictionary of fields to update
            commit: Commit immediately; otherwise only flush
            
        Returns:
            Updated entity
            
        Raises:
            NotFoundError: If entity not found
            DuplicateError: If a unique column value is taken
            RepositoryError: If update fails
        """
        entity = self.get_by_id(entity_id)
        self.ensure_unique(updates, exclude_id=entity_id)
        
        try:
            # Apply updates
            for key, value in updates.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)
            if hasattr(entity, "updated_time"):
                entity.updated_time = self.now()
            
            self._finish(commit)
            self.db.refresh(entity)
            return entity
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(self.model.__name__, updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to update {self.model.__name__}: {str(e)}")
    
    def delete(self, entity_id: Any, commit: bool = True) -> bool:
        """
        Delete an entity by ID.
        
        Args:
            entity_id: Entity identifier
            commit: Commit immediately; otherwise only flush
            
        Returns:
            True if deletion successful
            
        Raises:
            NotFoundError: If entity not found
            ReferencedError: If the entity is still referenced
            RepositoryError: If deletion fails
        """
        entity = self.get_by_id(entity_id)
        self.ensure_deletable(entity)
        
        try:
            self.db.delete(entity)
            self._finish(commit)
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to delete {self.model.__name__}: {str(e)}")
    
    def _finish(self, commit: bool):
        if commit:
            self.db.commit()
        else:
            self.db.flush()
