"""
CRUD operations for the favorites field of user documents
"""
from typing import Iterable, List, Optional

from google.api_core import exceptions as gcp_exceptions

from cookup.errors import RemoteStoreError


class FavoritesCRUD:
    """Reads and writes users/{user_id}.favorites."""

    COLLECTION = "users"
    FIELD = "favorites"

    def __init__(self, db):
        self._db = db

    def _doc_ref(self, user_id: str):
        return self._db.collection(FavoritesCRUD.COLLECTION).document(user_id)

    def get(self, user_id: str) -> Optional[List[str]]:
        """
        Get the favorites list stored for a user.

        Args:
            user_id: Firebase user ID

        Returns:
            List of meal IDs, or None if the document or the field is absent

        Raises:
            RemoteStoreError: if Firestore could not be read
        """
        try:
            doc = self._doc_ref(user_id).get()
        except gcp_exceptions.GoogleAPIError as e:
            raise RemoteStoreError(f"Failed to load favorites for {user_id}: {e}") from e

        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        favorites = data.get(FavoritesCRUD.FIELD)
        if not isinstance(favorites, list):
            return None
        return [item for item in favorites if isinstance(item, str)]

    def set(self, user_id: str, ids: Iterable[str]) -> None:
        """
        Overwrite the favorites field, leaving sibling fields untouched.

        Args:
            user_id: Firebase user ID
            ids: Favorite meal IDs

        Raises:
            RemoteStoreError: if Firestore could not be written
        """
        try:
            self._doc_ref(user_id).set({FavoritesCRUD.FIELD: list(ids)}, merge=True)
        except gcp_exceptions.GoogleAPIError as e:
            raise RemoteStoreError(f"Failed to sync favorites for {user_id}: {e}") from e
