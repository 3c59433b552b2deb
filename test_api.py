"""
Tests for the FastAPI endpoints with an in-process store and a mocked TheMealDB client.
"""
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from cookup.auth import AuthStateProvider
from cookup.config import Settings
from cookup.db.models import Ingredient, Meal
from cookup.db.preferences import LocalPreferences
from cookup.errors import RequestFailedError
from cookup.services.favorite_store import FavoriteStore
from cookup.services.meal_service import MealService
from main import create_app

CORBA = Meal(idMeal="52977", strMeal="Corba", strCategory="Side")
POUTINE = Meal(idMeal="52804", strMeal="Poutine", strCategory="Miscellaneous")


class APITestCase(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)

        self.settings = Settings(firebase_enabled=False, home_random_count=4)
        self.auth = AuthStateProvider()
        self.remote = MagicMock()
        self.remote.get.return_value = None
        self.store = FavoriteStore(
            LocalPreferences(os.path.join(tmp.name, "preferences.json")),
            self.auth,
            remote=self.remote,
        )
        self.addCleanup(self.store.close)
        self.meals = MagicMock(spec=MealService)

        app = create_app(self.settings, store=self.store, auth=self.auth, meal_service=self.meals)
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)


class TestMealEndpoints(APITestCase):

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_search_marks_favorites(self):
        self.store.add("52977")
        self.meals.search_meals.return_value = [CORBA, POUTINE]

        response = self.client.get("/api/meals/search", params={"q": "o"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([m["id"] for m in body], ["52977", "52804"])
        self.assertEqual([m["is_favorite"] for m in body], [True, False])
        self.meals.search_meals.assert_awaited_once_with("o")

    def test_search_by_keywords(self):
        self.meals.search_meals_by_keywords.return_value = [CORBA]
        response = self.client.get("/api/meals/search", params={"keywords": "soup, side,"})
        self.assertEqual(response.status_code, 200)
        self.meals.search_meals_by_keywords.assert_awaited_once_with(["soup", "side"])

    def test_search_requires_terms(self):
        self.assertEqual(self.client.get("/api/meals/search").status_code, 400)

    def test_all_category_returns_random_meals(self):
        self.meals.random_meals.return_value = [CORBA]
        response = self.client.get("/api/meals/category/All")
        self.assertEqual(response.status_code, 200)
        self.meals.random_meals.assert_awaited_once_with(4)

    def test_empty_category_is_not_found(self):
        self.meals.filter_by_category.return_value = []
        self.assertEqual(self.client.get("/api/meals/category/Goat").status_code, 404)

    def test_meals_by_ingredient(self):
        self.meals.filter_by_ingredient.return_value = [POUTINE]
        response = self.client.get("/api/meals/ingredient/Cheese")
        self.assertEqual(response.json()[0]["title"], "Poutine")

    def test_meal_details(self):
        self.meals.lookup_meal.return_value = CORBA
        response = self.client.get("/api/meals/52977")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["category"], "Side")

    def test_unknown_meal(self):
        self.meals.lookup_meal.return_value = None
        self.assertEqual(self.client.get("/api/meals/1").status_code, 404)

    def test_upstream_failure_is_bad_gateway(self):
        self.meals.lookup_meal.side_effect = RequestFailedError("timeout")
        self.assertEqual(self.client.get("/api/meals/52977").status_code, 502)

    def test_ingredients_filter(self):
        self.meals.list_ingredients.return_value = [
            Ingredient(idIngredient="1", strIngredient="Chicken"),
            Ingredient(idIngredient="2", strIngredient="Chickpeas"),
            Ingredient(idIngredient="3", strIngredient="Beef"),
        ]
        response = self.client.get("/api/ingredients", params={"q": "CHICK"})
        self.assertEqual([i["strIngredient"] for i in response.json()], ["Chicken", "Chickpeas"])


class TestFavoriteEndpoints(APITestCase):

    def test_toggle_add_remove(self):
        response = self.client.post("/api/favorites/52977/toggle")
        self.assertEqual(response.json(), {"id": "52977", "is_favorite": True})

        self.client.put("/api/favorites/52804")
        self.assertEqual(self.client.get("/api/favorites").json()["ids"], ["52804", "52977"])

        response = self.client.delete("/api/favorites/52977")
        self.assertEqual(response.json(), {"id": "52977", "is_favorite": False})
        self.assertFalse(self.store.is_favorite("52977"))

    def test_favorite_meals_skip_unavailable(self):
        self.store.add("52977")
        self.store.add("52804")
        self.meals.lookup_meal.side_effect = lambda mid: CORBA if mid == "52977" else None

        response = self.client.get("/api/favorites/meals")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([m["id"] for m in response.json()], ["52977"])

    def test_reload_requires_session(self):
        self.assertEqual(self.client.post("/api/favorites/reload").status_code, 409)

    def test_reload_when_signed_in(self):
        self.auth.set_user("u1")
        self.assertEqual(self.client.post("/api/favorites/reload").status_code, 202)


class TestSessionEndpoints(APITestCase):

    @patch("cookup.auth.firebase_auth.verify_id_token")
    def test_sign_in_loads_remote_favorites(self, verify):
        verify.return_value = {"uid": "u1"}
        self.remote.get.return_value = ["52804"]
        self.store.add("52977")

        response = self.client.post("/api/session", json={"id_token": "token"})
        self.assertEqual(response.json(), {"user_id": "u1"})
        self.store.flush()
        self.assertEqual(self.client.get("/api/favorites").json(), {"ids": ["52804"], "user_id": "u1"})

    @patch("cookup.auth.firebase_auth.verify_id_token")
    def test_invalid_token(self, verify):
        verify.side_effect = ValueError("bad token")
        response = self.client.post("/api/session", json={"id_token": "nope"})
        self.assertEqual(response.status_code, 401)

    def test_sign_out_keeps_favorites(self):
        self.auth.set_user("u1")
        self.store.flush()
        self.store.add("52977")

        response = self.client.delete("/api/session")
        self.assertEqual(response.json(), {"user_id": None})
        self.assertEqual(self.client.get("/api/favorites").json()["ids"], ["52977"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
