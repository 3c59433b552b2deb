"""
Authentication state for the current session

Holds the signed-in Firebase user and notifies listeners whenever it changes,
the way Firebase client SDKs report auth state.
"""
import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from cookup.errors import AuthenticationError

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[str]], None]


class AuthStateProvider:
    """
    Tracks the current user ID and broadcasts transitions.

    Listeners are called with the new user ID, or None after sign-out. A newly
    registered listener is called once right away with the current state.
    """

    def __init__(self, app=None):
        self._app = app
        self._user_id: Optional[str] = None
        self._listeners: Dict[int, AuthListener] = {}
        self._handles = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def current_user_id(self) -> Optional[str]:
        with self._lock:
            return self._user_id

    def add_state_listener(self, listener: AuthListener) -> int:
        """
        Register a listener for auth state changes.

        Args:
            listener: Callable receiving the user ID or None

        Returns:
            Handle to pass to remove_state_listener
        """
        with self._lock:
            handle = next(self._handles)
            self._listeners[handle] = listener
            user_id = self._user_id
        self._notify(listener, user_id)
        return handle

    def remove_state_listener(self, handle: int) -> None:
        with self._lock:
            self._listeners.pop(handle, None)

    def set_user(self, user_id: Optional[str]) -> None:
        """
        Switch the current user and notify listeners if it changed.

        Args:
            user_id: New user ID, or None to sign out
        """
        with self._lock:
            if user_id == self._user_id:
                return
            self._user_id = user_id
            listeners = list(self._listeners.values())

        logger.info("Auth state changed: %s", user_id or "signed out")
        for listener in listeners:
            self._notify(listener, user_id)

    def sign_in_with_token(self, id_token: str) -> str:
        """
        Verify a Firebase ID token and sign its user in.

        Args:
            id_token: Token issued by Firebase Authentication to the client

        Returns:
            The verified user ID

        Raises:
            AuthenticationError: if the token is invalid, expired or revoked
        """
        try:
            claims = firebase_auth.verify_id_token(id_token, app=self._app)
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            raise AuthenticationError(f"Invalid ID token: {e}") from e

        user_id = claims["uid"]
        self.set_user(user_id)
        return user_id

    def sign_out(self) -> None:
        self.set_user(None)

    @staticmethod
    def _notify(listener: AuthListener, user_id: Optional[str]) -> None:
        try:
            listener(user_id)
        except Exception:
            logger.exception("Auth state listener failed")
