from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Mapping, Optional, Union

from .errors import NotFoundError, StorageReadError, StorageWriteError
from .models import Recipe, RecipeDraft
from .persistence import RecipePersistence

logger = logging.getLogger(__name__)

DeleteListener = Callable[[Recipe], None]


def _millis() -> int:
    return time.time_ns() // 1_000_000


class RecipeRepository:
    """Owns the recipe collection and keeps it in step with durable storage.

    ``create`` and ``delete`` only change the in-memory collection once the
    new collection has been written. Calls are serialized so overlapping
    triggers cannot interleave their read-modify-write cycles.
    """

    def __init__(self, persistence: RecipePersistence, *, clock: Callable[[], int] = _millis) -> None:
        self._persistence = persistence
        self._clock = clock
        self._recipes: List[Recipe] = []
        self._loaded = False
        self._last_id = 0
        self._lock = threading.RLock()
        self._delete_listeners: List[DeleteListener] = []

    @property
    def loaded(self) -> bool:
        return self._loaded

    def initialize(self) -> None:
        """Load the stored collection.

        An unreadable blob leaves the repository usable with no recipes; the
        :class:`StorageReadError` is re-raised afterwards for reporting.
        """

        with self._lock:
            try:
                recipes = self._persistence.load()
            except StorageReadError:
                logger.exception("Could not load stored recipes; starting with an empty collection")
                self._recipes = []
                self._loaded = True
                raise

            self._recipes = list(recipes)
            self._loaded = True
            self._remember_ids(recipes)
            logger.info("Loaded %d recipes", len(recipes))

    def list(self) -> List[Recipe]:
        return list(self._recipes)

    def get(self, recipe_id: str) -> Recipe:
        for recipe in self._recipes:
            if recipe.id == recipe_id:
                return recipe
        raise NotFoundError(recipe_id)

    def create(self, draft: Union[RecipeDraft, Mapping[str, Any]]) -> Recipe:
        if not isinstance(draft, RecipeDraft):
            draft = RecipeDraft.from_mapping(draft)
        draft.validate()

        with self._lock:
            recipe = draft.to_recipe(self._next_id())
            updated = [recipe, *self._recipes]
            try:
                self._persistence.save(updated)
            except StorageWriteError:
                logger.warning("Creating recipe %r failed; collection left unchanged", recipe.title, exc_info=True)
                raise
            self._recipes = updated

        logger.info("Created recipe %s (%s)", recipe.id, recipe.title)
        return recipe

    def delete(self, recipe_id: str) -> Recipe:
        with self._lock:
            removed = self.get(recipe_id)
            updated = [recipe for recipe in self._recipes if recipe.id != recipe_id]
            try:
                self._persistence.save(updated)
            except StorageWriteError:
                logger.warning("Deleting recipe %s failed; recipe kept", recipe_id, exc_info=True)
                raise
            self._recipes = updated

        logger.info("Deleted recipe %s (%s)", removed.id, removed.title)
        for listener in list(self._delete_listeners):
            try:
                listener(removed)
            except Exception:
                # The delete is already durable.
                logger.exception("Delete listener %r failed for recipe %s", listener, removed.id)
        return removed

    def add_delete_listener(self, listener: DeleteListener) -> None:
        self._delete_listeners.append(listener)

    def remove_delete_listener(self, listener: DeleteListener) -> None:
        self._delete_listeners.remove(listener)

    def _next_id(self) -> str:
        candidate = max(self._clock(), self._last_id + 1)
        self._last_id = candidate
        return str(candidate)

    def _remember_ids(self, recipes: List[Recipe]) -> None:
        for recipe in recipes:
            if recipe.id.isdigit():
                self._last_id = max(self._last_id, int(recipe.id))


__all__ = ["RecipeRepository"]
