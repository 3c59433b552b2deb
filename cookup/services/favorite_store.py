"""
Favorite Store - the user's favorite meals kept in sync across memory,
on-device preferences and the signed-in user's Firestore document.

Policy:
- Local preferences are written on every change, signed in or not
- While signed in, every change is pushed to users/{uid}.favorites
- On sign-in the remote list replaces the local one when it exists; changes
  made while the remote list was being fetched are replayed on top of it
- Sign-out leaves the local list as it is
"""
import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from cookup.errors import LocalStorageError

logger = logging.getLogger(__name__)

# Preference key for the favorites list
FAVORITES_KEY = "favorite_meal_ids"

ADD = "add"
REMOVE = "remove"

FavoritesCallback = Callable[[FrozenSet[str]], None]
ErrorSink = Callable[[str, str, Exception], None]


def log_sync_error(operation: str, user_id: str, error: Exception) -> None:
    """Default error sink: remote failures are logged and otherwise ignored."""
    logger.error("Failed to %s favorites for user %s: %s", operation, user_id, error)


class Subscription:
    """Handle returned by FavoriteStore.subscribe."""

    def __init__(self, store: "FavoriteStore", token: int):
        self._store = store
        self._token = token

    def cancel(self) -> None:
        self._store._unsubscribe(self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class FavoriteStore:
    """
    Owner of the favorite meal IDs.

    Every read and write of the ID set goes through one lock. Remote reads and
    writes run one at a time on a background worker, in the order they were
    dispatched, so mutators never wait on the network.
    """

    def __init__(
        self,
        local,
        auth,
        remote=None,
        on_error: Optional[ErrorSink] = None,
    ):
        """
        Args:
            local: LocalPreferences (or anything with get_string_list/set)
            auth: AuthStateProvider to follow sign-in and sign-out
            remote: FavoritesCRUD, or None to stay local-only
            on_error: Receives (operation, user_id, exception) for remote failures
        """
        self._local = local
        self._auth = auth
        self._remote = remote
        self._on_error = on_error or log_sync_error

        self._lock = threading.RLock()
        self._subscribers: Dict[int, FavoritesCallback] = {}
        self._tokens = itertools.count(1)
        self._closed = False
        self._worker_ident: Optional[int] = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="favorites-sync",
            initializer=self._mark_worker,
        )

        # Mutations made while a sign-in load is in flight, replayed onto
        # the remote list when it arrives
        self._seq = 0
        self._journal: List[Tuple[int, str, str]] = []
        self._loads_in_flight = 0

        self._ids: FrozenSet[str] = self._load_local()
        self._auth_handle = auth.add_state_listener(self._on_auth_state_changed)

    # ========== QUERIES ==========

    @property
    def favorites(self) -> FrozenSet[str]:
        with self._lock:
            return self._ids

    def is_favorite(self, meal_id: str) -> bool:
        with self._lock:
            return meal_id in self._ids

    # ========== MUTATIONS ==========

    def toggle(self, meal_id: str) -> None:
        """
        Add the meal if it is not a favorite, remove it otherwise.

        Args:
            meal_id: TheMealDB meal ID
        """
        _check_id(meal_id)
        with self._lock:
            if meal_id in self._ids:
                self._commit(REMOVE, meal_id)
            else:
                self._commit(ADD, meal_id)

    def add(self, meal_id: str) -> None:
        _check_id(meal_id)
        with self._lock:
            if meal_id in self._ids:
                return
            self._commit(ADD, meal_id)

    def remove(self, meal_id: str) -> None:
        _check_id(meal_id)
        with self._lock:
            if meal_id not in self._ids:
                return
            self._commit(REMOVE, meal_id)

    def reload(self) -> Optional[Future]:
        """
        Fetch the signed-in user's remote favorites again.

        Returns:
            Future for the load, or None when nobody is signed in
        """
        user_id = self._auth.current_user_id
        if user_id is None or self._remote is None:
            return None
        return self._dispatch_load(user_id)

    # ========== OBSERVATION ==========

    def subscribe(self, callback: FavoritesCallback) -> Subscription:
        """
        Register a callback run with the new ID set after every change.

        Callbacks run on the thread that made the change, before the
        mutating call returns.
        """
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback
        return Subscription(self, token)

    def _unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    # ========== LIFECYCLE ==========

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until remote work dispatched so far has finished."""
        future = self._submit(lambda: None)
        if future is not None:
            future.result(timeout)

    def close(self) -> None:
        """Stop following auth changes and drain pending remote work."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            handle = self._auth_handle
        try:
            # A subscriber on the worker thread cannot wait for itself
            on_worker = threading.get_ident() == self._worker_ident
            self._executor.shutdown(wait=not on_worker)
        finally:
            self._auth.remove_state_listener(handle)

    def __enter__(self) -> "FavoriteStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== INTERNALS ==========

    def _load_local(self) -> FrozenSet[str]:
        try:
            stored = self._local.get_string_list(FAVORITES_KEY)
        except LocalStorageError as e:
            logger.warning("Ignoring unreadable local favorites: %s", e)
            return frozenset()
        return _clean(stored or [])

    def _persist_local(self) -> None:
        try:
            self._local.set(FAVORITES_KEY, sorted(self._ids))
        except LocalStorageError as e:
            logger.error("Failed to persist favorites locally: %s", e)

    def _commit(self, op: str, meal_id: str) -> None:
        # Caller holds the lock
        self._replace(_apply(self._ids, op, meal_id))
        self._seq += 1
        if self._loads_in_flight:
            self._journal.append((self._seq, op, meal_id))
        self._persist_local()
        user_id = self._auth.current_user_id
        if user_id is not None and self._remote is not None:
            self._submit(self._push_remote, user_id)

    def _replace(self, ids: FrozenSet[str]) -> None:
        if ids == self._ids:
            return
        self._ids = ids
        for callback in list(self._subscribers.values()):
            try:
                callback(ids)
            except Exception:
                logger.exception("Favorites subscriber failed")

    def _submit(self, fn, *args) -> Optional[Future]:
        with self._lock:
            if self._closed:
                return None
            return self._executor.submit(fn, *args)

    def _mark_worker(self) -> None:
        self._worker_ident = threading.get_ident()

    def _on_auth_state_changed(self, user_id: Optional[str]) -> None:
        if user_id is None:
            logger.info("Signed out, keeping %d local favorites", len(self.favorites))
            return
        if self._remote is None:
            return
        self._dispatch_load(user_id)

    def _dispatch_load(self, user_id: str) -> Optional[Future]:
        with self._lock:
            if self._closed:
                return None
            self._loads_in_flight += 1
            return self._executor.submit(self._load_remote, user_id, self._seq)

    def _load_remote(self, user_id: str, since: int) -> None:
        try:
            self._apply_remote(user_id, since)
        finally:
            with self._lock:
                self._loads_in_flight -= 1
                if not self._loads_in_flight:
                    self._journal.clear()

    def _apply_remote(self, user_id: str, since: int) -> None:
        try:
            remote_ids = self._remote.get(user_id)
        except Exception as e:
            self._on_error("load", user_id, e)
            return

        with self._lock:
            if self._closed:
                return
            if self._auth.current_user_id != user_id:
                logger.info("Discarding favorites of %s, no longer signed in", user_id)
                return
            if remote_ids is not None:
                ids = _clean(remote_ids)
                # Changes made during the fetch win over the fetched list
                for seq, op, meal_id in self._journal:
                    if seq > since:
                        ids = _apply(ids, op, meal_id)
                self._replace(ids)
                logger.info("Loaded %d favorites for user %s", len(self._ids), user_id)
            else:
                logger.info("No remote favorites for user %s, keeping local list", user_id)
            self._persist_local()

    def _push_remote(self, user_id: str) -> None:
        with self._lock:
            ids = sorted(self._ids)
        try:
            self._remote.set(user_id, ids)
        except Exception as e:
            self._on_error("sync", user_id, e)


def _check_id(meal_id: str) -> None:
    if not isinstance(meal_id, str) or not meal_id:
        raise ValueError("Meal ID must be a non-empty string")


def _apply(ids: FrozenSet[str], op: str, meal_id: str) -> FrozenSet[str]:
    if op == ADD:
        return ids | {meal_id}
    return ids - {meal_id}


def _clean(ids: Iterable[str]) -> FrozenSet[str]:
    return frozenset(i for i in ids if isinstance(i, str) and i)
