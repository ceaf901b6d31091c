"""
Base repository class for data access layer.

Repositories hold query logic only. They never commit: the calling service
owns the transaction so that a multi-row write either lands completely or
not at all.

Example:
    class PlanRepository(BaseRepository[SubscriptionPlan]):
        def find_by_name(self, name: str) -> Optional[SubscriptionPlan]:
            return self.where_first(SubscriptionPlan.name == name)
"""
from typing import TypeVar, Generic, Type, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def find_by_id(self, id: int) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.get(self.model_type, id)

    def add(self, instance: T) -> T:
        """Stage a new record and flush so the store assigns its ID."""
        self.db.add(instance)
        self.db.flush()
        return instance

    def apply(self, instance: T, changes: dict) -> T:
        """Copy known attributes onto a loaded record."""
        for key, value in changes.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        return instance

    # ========================================================================
    # Query Builders
    # ========================================================================

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0
