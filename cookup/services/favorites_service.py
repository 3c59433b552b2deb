"""
Favorites hydration - turns favorite meal IDs into full TheMealDB records
"""
import asyncio
import logging
from typing import Iterable, List, Optional

from cookup.db.models import Meal
from cookup.errors import MealServiceError
from cookup.services.meal_service import MealService, dedupe_meals

logger = logging.getLogger(__name__)


async def _lookup_or_none(service: MealService, meal_id: str) -> Optional[Meal]:
    try:
        return await service.lookup_meal(meal_id)
    except MealServiceError as e:
        logger.warning("Skipping favorite %s: %s", meal_id, e)
        return None


async def load_favorite_meals(ids: Iterable[str], service: MealService) -> List[Meal]:
    """
    Look up every favorite in parallel.

    Args:
        ids: Favorite meal IDs
        service: TheMealDB client

    Returns:
        Meals sorted by title; IDs that fail or are unknown are left out
    """
    meal_ids = sorted(set(ids))
    if not meal_ids:
        return []

    results = await asyncio.gather(*(_lookup_or_none(service, mid) for mid in meal_ids))

    missing = [mid for mid, meal in zip(meal_ids, results) if meal is None]
    if missing:
        logger.warning("Could not load %d of %d favorites", len(missing), len(meal_ids))

    meals = dedupe_meals(meal for meal in results if meal is not None)
    return sorted(meals, key=lambda m: m.title.lower())
