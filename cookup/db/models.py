"""
Pydantic models for TheMealDB payloads and favorites responses
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

MAX_INGREDIENT_SLOTS = 20


class Meal(BaseModel):
    """Meal record as returned by TheMealDB (search, filter, lookup, random)."""
    model_config = ConfigDict(extra="allow")

    idMeal: Optional[str] = Field(None, description="TheMealDB meal ID")
    strMeal: Optional[str] = Field(None, description="Meal name")
    strMealThumb: Optional[str] = Field(None, description="Thumbnail image URL")
    strCategory: Optional[str] = Field(None, description="Meal category")
    strArea: Optional[str] = Field(None, description="Cuisine area")
    strInstructions: Optional[str] = Field(None, description="Cooking instructions")
    strTags: Optional[str] = Field(None, description="Comma separated tags")
    strYoutube: Optional[str] = Field(None, description="YouTube video URL")
    strSource: Optional[str] = Field(None, description="Source URL")

    @property
    def id(self) -> str:
        return self.idMeal or ""

    @property
    def title(self) -> str:
        return self.strMeal or "Untitled"

    @property
    def thumbnail_url(self) -> Optional[str]:
        return self.strMealThumb or None

    @property
    def ingredients(self) -> List[Tuple[str, str]]:
        """
        Ingredient and measure pairs from the numbered strIngredientN fields.

        Returns:
            List of (name, measure) tuples, skipping blank ingredient slots
        """
        extra = self.model_extra or {}
        pairs = []
        for i in range(1, MAX_INGREDIENT_SLOTS + 1):
            name = (extra.get(f"strIngredient{i}") or "").strip()
            if not name:
                continue
            measure = (extra.get(f"strMeasure{i}") or "").strip()
            pairs.append((name, measure))
        return pairs


class MealResponse(BaseModel):
    """Envelope for endpoints returning meals."""
    meals: Optional[List[Meal]] = None


class Ingredient(BaseModel):
    """Ingredient entry from list.php?i=list."""
    idIngredient: Optional[str] = None
    strIngredient: Optional[str] = None
    strDescription: Optional[str] = None
    strThumb: Optional[str] = None
    strType: Optional[str] = None

    @property
    def name(self) -> str:
        return self.strIngredient or ""


class IngredientResponse(BaseModel):
    """Envelope for list.php?i=list."""
    meals: Optional[List[Ingredient]] = None


class MealSummary(BaseModel):
    """Meal shape returned by the API."""
    id: str = Field(..., description="TheMealDB meal ID")
    title: str = Field(..., description="Meal name")
    thumbnail_url: Optional[str] = Field(None, description="Thumbnail image URL")
    category: Optional[str] = Field(None, description="Meal category")
    area: Optional[str] = Field(None, description="Cuisine area")
    instructions: Optional[str] = Field(None, description="Cooking instructions")
    ingredients: List[Tuple[str, str]] = Field(default=[], description="Ingredient and measure pairs")
    is_favorite: bool = Field(False, description="Whether the meal is in the favorites list")

    @classmethod
    def from_meal(cls, meal: Meal, is_favorite: bool = False) -> "MealSummary":
        return cls(
            id=meal.id,
            title=meal.title,
            thumbnail_url=meal.thumbnail_url,
            category=meal.strCategory,
            area=meal.strArea,
            instructions=meal.strInstructions,
            ingredients=meal.ingredients,
            is_favorite=is_favorite,
        )


class FavoritesResponse(BaseModel):
    """Current favorites and session state."""
    ids: List[str] = Field(default=[], description="Favorite meal IDs, sorted")
    user_id: Optional[str] = Field(None, description="Signed-in user, if any")


class FavoriteToggleResponse(BaseModel):
    """Membership after a favorites mutation."""
    id: str = Field(..., description="Meal ID")
    is_favorite: bool = Field(..., description="Membership after the call")


class SessionCreate(BaseModel):
    """Model for signing in with a Firebase ID token."""
    id_token: str = Field(..., description="Firebase ID token issued to the client")


class SessionResponse(BaseModel):
    """Session state."""
    user_id: Optional[str] = Field(None, description="Signed-in user, if any")
