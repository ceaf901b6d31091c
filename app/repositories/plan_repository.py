"""Subscription plan repository."""
from typing import List, Optional

from sqlalchemy import func

from app.models import SubscriptionPlan
from app.repositories.base import BaseRepository


class PlanRepository(BaseRepository[SubscriptionPlan]):
    """Repository for subscription plan data access."""

    def __init__(self, db):
        super().__init__(SubscriptionPlan, db)

    def find_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        """Case-insensitive lookup by plan name."""
        return self.where_first(func.lower(SubscriptionPlan.name) == name.strip().lower())

    def find_all_by_price(self) -> List[SubscriptionPlan]:
        """Plans cheapest first."""
        return self.db.query(SubscriptionPlan).order_by(
            SubscriptionPlan.price.asc(), SubscriptionPlan.id.asc()
        ).all()
