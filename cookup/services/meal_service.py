"""
TheMealDB API client

Thin async wrapper over the public TheMealDB endpoints. Every call returns
decoded pydantic models or raises a MealServiceError subclass.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from cookup.config import DEFAULT_MEALDB_BASE_URL
from cookup.db.models import Ingredient, IngredientResponse, Meal, MealResponse
from cookup.errors import DecodingError, RequestFailedError

logger = logging.getLogger(__name__)


def dedupe_meals(meals: Iterable[Meal]) -> List[Meal]:
    """
    Drop meals whose ID was already seen, keeping the first occurrence.
    Meals without an ID are always kept.
    """
    seen = set()
    unique = []
    for meal in meals:
        if not meal.id:
            unique.append(meal)
            continue
        if meal.id in seen:
            continue
        seen.add(meal.id)
        unique.append(meal)
    return unique


class MealService:
    """Client for TheMealDB v1 API."""

    def __init__(
        self,
        base_url: str = DEFAULT_MEALDB_BASE_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> dict:
        url = f"{self.base_url}/{path}"
        logger.debug("GET %s %s", path, params)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise RequestFailedError(f"Request to {path} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise DecodingError(f"Invalid JSON from {path}: {e}") from e

    async def _get_meals(self, path: str, params: Optional[Dict[str, str]] = None) -> List[Meal]:
        payload = await self._get(path, params)
        try:
            decoded = MealResponse.model_validate(payload)
        except ValidationError as e:
            raise DecodingError(f"Unexpected meal payload from {path}: {e}") from e
        return decoded.meals or []

    async def search_meals(self, query: str) -> List[Meal]:
        """
        Search meals by name.

        Args:
            query: Free text matched against meal names

        Returns:
            Matching meals, empty when nothing matches
        """
        return await self._get_meals("search.php", {"s": query})

    async def search_meals_by_keywords(self, keywords: List[str]) -> List[Meal]:
        """
        Run one name search per keyword in parallel.

        Args:
            keywords: Search terms

        Returns:
            Combined results, deduplicated by meal ID
        """
        results = await asyncio.gather(*(self.search_meals(kw) for kw in keywords))
        return dedupe_meals(meal for batch in results for meal in batch)

    async def filter_by_category(self, category: str) -> List[Meal]:
        """Meals in a category (summary fields only)."""
        return await self._get_meals("filter.php", {"c": category})

    async def filter_by_ingredient(self, ingredient: str) -> List[Meal]:
        """Meals using an ingredient (summary fields only)."""
        return await self._get_meals("filter.php", {"i": ingredient})

    async def random_meal(self) -> Meal:
        meals = await self._get_meals("random.php")
        if not meals:
            raise RequestFailedError("random.php returned no meal")
        return meals[0]

    async def random_meals(self, count: int) -> List[Meal]:
        """
        Fetch several random meals in parallel.

        Args:
            count: Number of random.php calls to make

        Returns:
            Distinct meals, possibly fewer than count
        """
        if count <= 0:
            return []
        meals = await asyncio.gather(*(self.random_meal() for _ in range(count)))
        return dedupe_meals(meals)

    async def lookup_meal(self, meal_id: str) -> Optional[Meal]:
        """
        Full details for one meal.

        Args:
            meal_id: TheMealDB meal ID

        Returns:
            The meal, or None if TheMealDB does not know the ID
        """
        meals = await self._get_meals("lookup.php", {"i": meal_id})
        return meals[0] if meals else None

    async def list_ingredients(self) -> List[Ingredient]:
        payload = await self._get("list.php", {"i": "list"})
        try:
            decoded = IngredientResponse.model_validate(payload)
        except ValidationError as e:
            raise DecodingError(f"Unexpected ingredient payload: {e}") from e
        return decoded.meals or []
