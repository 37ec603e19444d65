from __future__ import annotations

import json
import logging
from typing import List, Sequence

from .errors import StorageReadError, StorageWriteError
from .models import Recipe
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "@food_recipes_data"


class RecipePersistence:
    """Reads and writes the whole recipe collection as one JSON blob."""

    def __init__(self, store: KeyValueStore, *, key: str = STORAGE_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> List[Recipe]:
        try:
            blob = self._store.get(self._key)
        except Exception as exc:
            raise StorageReadError(f"Failed to read stored recipes: {exc}") from exc

        if blob is None:
            logger.debug("No stored recipes under %s", self._key)
            return []

        try:
            payload = json.loads(blob)
        except ValueError as exc:
            raise StorageReadError(f"Stored recipes are not valid JSON: {exc}") from exc

        if not isinstance(payload, list):
            raise StorageReadError("Stored recipes must be a JSON array.")

        recipes = []
        seen_ids = set()
        for index, entry in enumerate(payload):
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str) or not isinstance(entry.get("title"), str):
                raise StorageReadError(f"Stored recipe #{index} is malformed.")
            if entry["id"] in seen_ids:
                raise StorageReadError(f"Stored recipe #{index} repeats id '{entry['id']}'.")
            seen_ids.add(entry["id"])
            recipes.append(Recipe.from_dict(entry))

        logger.debug("Loaded %d recipes from %s", len(recipes), self._key)
        return recipes

    def save(self, recipes: Sequence[Recipe]) -> None:
        blob = json.dumps([recipe.to_dict() for recipe in recipes], ensure_ascii=False)
        try:
            self._store.set(self._key, blob)
        except Exception as exc:
            raise StorageWriteError(f"Failed to save recipes: {exc}") from exc
        logger.debug("Saved %d recipes to %s", len(recipes), self._key)

    def clear(self) -> None:
        try:
            self._store.remove(self._key)
        except Exception as exc:
            raise StorageWriteError(f"Failed to clear recipes: {exc}") from exc


__all__ = ["RecipePersistence", "STORAGE_KEY"]
