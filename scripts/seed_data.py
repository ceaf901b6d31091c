#!/usr/bin/env python3
"""
Seed subscription plans and sample content.

Safe to run repeatedly: plans are matched by name, games by external id,
and nothing that already exists is written twice.

Usage:
    python scripts/seed_data.py              # plans only
    python scripts/seed_data.py --samples    # plans plus sample games, picks and news
"""
import argparse
import sys
from pathlib import Path
from datetime import datetime, timedelta, timezone

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SUBSCRIPTION_PLANS = [
    {
        "name": "Basic",
        "price": 2900,
        "description": "Perfect for casual bettors",
        "features": [
            "Daily top 3 high-confidence picks",
            "Basic game analysis",
            "Daily MLB news digest",
            "Email delivery of picks",
        ],
    },
    {
        "name": "Pro",
        "price": 5900,
        "description": "Most popular choice for serious bettors",
        "features": [
            "All daily picks with confidence ratings",
            "Detailed game analysis & explanations",
            "Full access to MLB news & insights",
            "Mobile app access",
            "Basic analytics dashboard",
        ],
    },
    {
        "name": "Elite",
        "price": 9900,
        "description": "The ultimate MLB wagering experience",
        "features": [
            "Everything in Pro plan",
            "Advanced analytics dashboard access",
            "Historical model performance tracking",
            "Customizable alerts & notifications",
            "Weekly expert consultation",
            "Early access to picks (8 hrs advantage)",
        ],
    },
]


def _sample_games(now: datetime):
    """Tonight's sample slate; start times are 23:05 and 02:10 UTC (7:05 / 10:10 PM ET)."""
    first = now.replace(hour=23, minute=5, second=0, microsecond=0)
    return [
        (
            {
                "external_id": "sample-1",
                "home_team": "New York Yankees",
                "away_team": "Boston Red Sox",
                "home_team_abbreviation": "NYY",
                "away_team_abbreviation": "BOS",
                "home_team_record": "45-30",
                "away_team_record": "40-35",
                "home_team_moneyline": -150,
                "away_team_moneyline": 130,
                "start_time": first,
            },
            {
                "pick_type": "moneyline",
                "pick_side": "home",
                "confidence": 72,
                "confidence_scale": 100,
                "home_win_probability": 0.61,
                "away_win_probability": 0.39,
                "analysis": "Yankees starter has held Boston to a .210 average this season.",
                "tier": "basic",
                "model_version": "1.0.0",
            },
        ),
        (
            {
                "external_id": "sample-2",
                "home_team": "Los Angeles Dodgers",
                "away_team": "San Francisco Giants",
                "home_team_abbreviation": "LAD",
                "away_team_abbreviation": "SF",
                "home_team_moneyline": -170,
                "away_team_moneyline": 145,
                "start_time": first + timedelta(hours=3, minutes=5),
            },
            {
                "pick_type": "total",
                "pick_side": "under",
                "line": 8.5,
                "confidence": 0.81,
                "analysis": "Both bullpens rested and a marine layer forecast at first pitch favour a low-scoring game.",
                "tier": "pro",
                "model_version": "1.0.0",
            },
        ),
    ]


SAMPLE_NEWS = [
    {
        "title": "Yankees ace returns from injured list",
        "excerpt": "The right-hander is set to start Friday after a six-week absence.",
        "content": "The Yankees activated their ace from the 15-day injured list ahead of the weekend series.",
        "category": "injury-update",
        "impact": "high",
        "teams": ["New York Yankees"],
    },
    {
        "title": "Dodgers bullpen leads the league in May",
        "excerpt": "A 2.41 relief ERA has carried Los Angeles through a tough stretch.",
        "content": "Los Angeles relievers have posted the best ERA in baseball over the past month.",
        "category": "analytics",
        "impact": "medium",
        "teams": ["Los Angeles Dodgers"],
    },
]


def seed_plans(db) -> int:
    from app.services.content_service import ContentService

    service = ContentService(db)
    created = 0
    for plan in SUBSCRIPTION_PLANS:
        if service.plans.find_by_name(plan["name"]) is not None:
            logger.debug(f"Plan already exists: {plan['name']}")
            continue
        service.create_plan(plan)
        created += 1
    logger.info(f"Seeded {created} subscription plans")
    return created


def seed_samples(db) -> int:
    from app.services.content_service import ContentService
    from app.services.game_service import GameService

    games = GameService(db)
    content = ContentService(db)
    created = 0

    for game_data, prediction_data in _sample_games(datetime.now(timezone.utc)):
        if games.games.find_by_external_id(game_data["external_id"]) is not None:
            continue
        game = games.create_game(game_data)
        content.create_prediction({**prediction_data, "game_id": game.id})
        created += 1

    if content.news.count() == 0:
        for item in SAMPLE_NEWS:
            content.create_news(item)

    logger.info(f"Seeded {created} sample games with predictions")
    return created


def main():
    """Run seeding operations."""
    parser = argparse.ArgumentParser(description="Seed subscription plans and sample content")
    parser.add_argument("--samples", action="store_true", help="also seed sample games, picks and news")
    args = parser.parse_args()

    from app.core.database import SessionLocal, init_db

    init_db()
    db = SessionLocal()
    try:
        seed_plans(db)
        if args.samples:
            seed_samples(db)
        logger.info("Seeding completed successfully")
    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
