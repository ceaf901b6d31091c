"""
Admin content routes: publishing predictions and news.

Mounted under /api/admin and guarded by the X-Admin-Token header.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.schemas import (
    NewsCreate, NewsResponse, NewsUpdate, PredictionCreate, PredictionResponse, PredictionUpdate
)
from app.services.content_service import ContentService

router = APIRouter(tags=["admin"])


@router.post("/predictions", response_model=PredictionResponse, status_code=status.HTTP_201_CREATED)
async def create_prediction(payload: PredictionCreate, db: Session = Depends(get_db)):
    """
    Publish the pick for a game.

    confidence may be sent on a 0-1 or 0-100 scale (confidence_scale 1 or
    100); it is stored on 0-1. 409 if the game already has a prediction,
    400 if the game is final.
    """
    return ContentService(db).create_prediction(payload)


@router.patch("/predictions/{prediction_id}", response_model=PredictionResponse)
async def update_prediction(prediction_id: int, payload: PredictionUpdate, db: Session = Depends(get_db)):
    return ContentService(db).update_prediction(prediction_id, payload)


@router.post("/news", response_model=NewsResponse, status_code=status.HTTP_201_CREATED)
async def create_news(payload: NewsCreate, db: Session = Depends(get_db)):
    return ContentService(db).create_news(payload)


@router.patch("/news/{news_id}", response_model=NewsResponse)
async def update_news(news_id: int, payload: NewsUpdate, db: Session = Depends(get_db)):
    return ContentService(db).update_news(news_id, payload)
