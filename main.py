"""
FastAPI Application for CookUp
Recipe search over TheMealDB with favorites synced to Firestore
"""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from cookup import __version__
from cookup.auth import AuthStateProvider
from cookup.config import Settings
from cookup.db.crud import FavoritesCRUD
from cookup.db.firestore import initialize_firebase_app, initialize_firestore
from cookup.db.models import (
    FavoritesResponse,
    FavoriteToggleResponse,
    Ingredient,
    MealSummary,
    SessionCreate,
    SessionResponse,
)
from cookup.db.preferences import LocalPreferences
from cookup.errors import AuthenticationError, MealServiceError
from cookup.services.favorite_store import FavoriteStore
from cookup.services.favorites_service import load_favorite_meals
from cookup.services.meal_service import MealService

logger = logging.getLogger(__name__)

# Category name that shows random meals instead of filtering
ALL_CATEGORIES = "All"


def build_store(settings: Settings, auth: AuthStateProvider) -> FavoriteStore:
    """
    Wire the favorites store to local preferences and, if enabled, Firestore.

    Args:
        settings: Application settings
        auth: Auth state the store follows

    Returns:
        FavoriteStore ready for use
    """
    remote = None
    if settings.firebase_enabled:
        db = initialize_firestore(
            settings.firebase_service_account_path,
            settings.firebase_project_id,
        )
        remote = FavoritesCRUD(db)
    else:
        logger.info("Firebase disabled, favorites stay on this device")
    return FavoriteStore(LocalPreferences(settings.preferences_path), auth, remote=remote)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[FavoriteStore] = None,
    auth: Optional[AuthStateProvider] = None,
    meal_service: Optional[MealService] = None,
) -> FastAPI:
    """
    Build the API. Components not passed in are created from settings.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.log_level)
        app.state.auth = auth
        if app.state.auth is None:
            firebase_app = None
            if settings.firebase_enabled:
                firebase_app = initialize_firebase_app(
                    settings.firebase_service_account_path,
                    settings.firebase_project_id,
                )
            app.state.auth = AuthStateProvider(firebase_app)
        app.state.meal_service = meal_service or MealService(
            settings.mealdb_base_url, settings.mealdb_timeout
        )
        owns_store = store is None
        app.state.store = store or build_store(settings, app.state.auth)
        try:
            yield
        finally:
            if owns_store:
                app.state.store.close()

    app = FastAPI(
        title="CookUp API",
        description="Recipe search over TheMealDB with synced favorites",
        version=__version__,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_store(request: Request) -> FavoriteStore:
        return request.app.state.store

    def get_auth(request: Request) -> AuthStateProvider:
        return request.app.state.auth

    def get_meal_service(request: Request) -> MealService:
        return request.app.state.meal_service

    def summarize(meals, favorites: FavoriteStore) -> List[MealSummary]:
        return [MealSummary.from_meal(m, favorites.is_favorite(m.id)) for m in meals]

    # Health check endpoint
    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "CookUp API",
            "version": __version__
        }

    # ========== MEAL ENDPOINTS ==========

    @app.get("/api/meals/search", response_model=List[MealSummary])
    async def search_meals(
        q: Optional[str] = Query(None, description="Meal name to search for"),
        keywords: Optional[str] = Query(None, description="Comma separated search terms"),
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Search meals by name, or by several keywords at once."""
        terms = [k.strip() for k in (keywords or "").split(",") if k.strip()]
        if not terms and not q:
            raise HTTPException(status_code=400, detail="Provide q or keywords")
        try:
            if terms:
                meals = await service.search_meals_by_keywords(terms)
            else:
                meals = await service.search_meals(q)
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return summarize(meals, favorites)

    @app.get("/api/meals/random", response_model=List[MealSummary])
    async def random_meals(
        count: int = Query(settings.home_random_count, ge=1, le=25),
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Distinct random meals."""
        try:
            meals = await service.random_meals(count)
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return summarize(meals, favorites)

    @app.get("/api/meals/category/{category}", response_model=List[MealSummary])
    async def meals_by_category(
        category: str,
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Meals in a category; the All category returns random meals."""
        try:
            if category == ALL_CATEGORIES:
                meals = await service.random_meals(settings.home_random_count)
            else:
                meals = await service.filter_by_category(category)
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        if not meals:
            raise HTTPException(status_code=404, detail=f"No meals found for category {category}")
        return summarize(meals, favorites)

    @app.get("/api/meals/ingredient/{ingredient}", response_model=List[MealSummary])
    async def meals_by_ingredient(
        ingredient: str,
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Meals that use an ingredient."""
        try:
            meals = await service.filter_by_ingredient(ingredient)
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return summarize(meals, favorites)

    @app.get("/api/meals/{meal_id}", response_model=MealSummary)
    async def get_meal(
        meal_id: str,
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Full meal details."""
        try:
            meal = await service.lookup_meal(meal_id)
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        if meal is None:
            raise HTTPException(status_code=404, detail="Meal not found")
        return MealSummary.from_meal(meal, favorites.is_favorite(meal.id))

    @app.get("/api/ingredients", response_model=List[Ingredient])
    async def list_ingredients(
        q: Optional[str] = Query(None, description="Case-insensitive name filter"),
        service: MealService = Depends(get_meal_service),
    ):
        """All TheMealDB ingredients, optionally filtered by name."""
        try:
            ingredients = await service.list_ingredients()
        except MealServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        if q:
            needle = q.lower()
            ingredients = [i for i in ingredients if needle in i.name.lower()]
        return ingredients

    # ========== FAVORITES ENDPOINTS ==========

    @app.get("/api/favorites", response_model=FavoritesResponse)
    def get_favorites(
        favorites: FavoriteStore = Depends(get_store),
        auth_state: AuthStateProvider = Depends(get_auth),
    ):
        """Favorite meal IDs."""
        return FavoritesResponse(
            ids=sorted(favorites.favorites),
            user_id=auth_state.current_user_id,
        )

    @app.get("/api/favorites/meals", response_model=List[MealSummary])
    async def get_favorite_meals(
        service: MealService = Depends(get_meal_service),
        favorites: FavoriteStore = Depends(get_store),
    ):
        """Favorites with full meal details; unavailable meals are left out."""
        meals = await load_favorite_meals(favorites.favorites, service)
        return [MealSummary.from_meal(m, True) for m in meals]

    @app.put("/api/favorites/{meal_id}", response_model=FavoriteToggleResponse)
    def add_favorite(meal_id: str, favorites: FavoriteStore = Depends(get_store)):
        """Add a meal to favorites."""
        favorites.add(meal_id)
        return FavoriteToggleResponse(id=meal_id, is_favorite=favorites.is_favorite(meal_id))

    @app.delete("/api/favorites/{meal_id}", response_model=FavoriteToggleResponse)
    def remove_favorite(meal_id: str, favorites: FavoriteStore = Depends(get_store)):
        """Remove a meal from favorites."""
        favorites.remove(meal_id)
        return FavoriteToggleResponse(id=meal_id, is_favorite=favorites.is_favorite(meal_id))

    @app.post("/api/favorites/{meal_id}/toggle", response_model=FavoriteToggleResponse)
    def toggle_favorite(meal_id: str, favorites: FavoriteStore = Depends(get_store)):
        """Flip a meal's favorite status."""
        favorites.toggle(meal_id)
        return FavoriteToggleResponse(id=meal_id, is_favorite=favorites.is_favorite(meal_id))

    @app.post("/api/favorites/reload", status_code=202)
    def reload_favorites(favorites: FavoriteStore = Depends(get_store)):
        """Fetch the signed-in user's favorites from Firestore again."""
        if favorites.reload() is None:
            raise HTTPException(status_code=409, detail="No signed-in user to reload favorites for")
        return {"status": "reloading"}

    # ========== SESSION ENDPOINTS ==========

    @app.post("/api/session", response_model=SessionResponse)
    def sign_in(session: SessionCreate, auth_state: AuthStateProvider = Depends(get_auth)):
        """Sign in with a Firebase ID token."""
        try:
            user_id = auth_state.sign_in_with_token(session.id_token)
        except AuthenticationError as e:
            raise HTTPException(status_code=401, detail=str(e))
        return SessionResponse(user_id=user_id)

    @app.delete("/api/session", response_model=SessionResponse)
    def sign_out(auth_state: AuthStateProvider = Depends(get_auth)):
        """Sign out. Favorites stay on this device."""
        auth_state.sign_out()
        return SessionResponse(user_id=None)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
