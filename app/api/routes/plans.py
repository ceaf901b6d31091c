"""Subscription plan catalogue."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.schemas import SubscriptionPlanResponse
from app.services.content_service import ContentService

router = APIRouter(prefix="/api/subscription-plans", tags=["plans"])


@router.get("", response_model=List[SubscriptionPlanResponse])
async def get_subscription_plans(db: Session = Depends(get_db)):
    """Plans cheapest first. Prices are in cents."""
    return ContentService(db).list_plans()
