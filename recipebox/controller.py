from __future__ import annotations

import enum
import functools
import logging
import threading
from typing import Callable, List, Optional

from .errors import InvalidTransition, StorageReadError
from .models import Recipe, RecipeDraft
from .repository import RecipeRepository

logger = logging.getLogger(__name__)

ConfirmDialog = Callable[[str], bool]
ImagePicker = Callable[[], Optional[str]]

DELETE_PROMPT = "Are you sure?"


class ViewState(str, enum.Enum):
    LIST = "list"
    ADD = "add"
    DETAIL = "detail"


def _serialized(method):
    """Run a trigger while holding the controller lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ViewController:
    """Tracks which view is showing and routes user actions to the repository.

    The controller never changes the collection itself. In DETAIL it keeps a
    reference to the selected recipe; in ADD it owns the draft. Triggers run
    one at a time, so a second trigger only sees the state the first one left
    behind once its storage round-trip has finished.
    """

    def __init__(self, repository: RecipeRepository) -> None:
        self.repository = repository
        self.state = ViewState.LIST
        self.selected: Optional[Recipe] = None
        self.draft = RecipeDraft()
        self._lock = threading.RLock()
        repository.add_delete_listener(self._on_recipe_deleted)

    @_serialized
    def initialize(self) -> Optional[StorageReadError]:
        """Load recipes, returning the read error that was recovered from, if any."""

        try:
            self.repository.initialize()
        except StorageReadError as exc:
            return exc
        return None

    def recipes(self) -> List[Recipe]:
        return self.repository.list()

    # LIST

    @_serialized
    def start_add(self) -> None:
        self._require(ViewState.LIST, "add")
        self.draft = RecipeDraft()
        self.state = ViewState.ADD

    @_serialized
    def open_detail(self, recipe_id: str) -> Recipe:
        self._require(ViewState.LIST, "open")
        recipe = self.repository.get(recipe_id)
        self.selected = recipe
        self.state = ViewState.DETAIL
        return recipe

    # ADD

    @_serialized
    def set_field(self, name: str, value: Optional[str]) -> None:
        self._require(ViewState.ADD, "edit")
        self.draft.set_field(name, value)

    @_serialized
    def pick_image(self, picker: ImagePicker) -> Optional[str]:
        self._require(ViewState.ADD, "pick image")
        reference = picker()
        if reference is not None:
            self.draft.set_field("image", reference)
        return reference

    @_serialized
    def cancel_add(self) -> None:
        self._require(ViewState.ADD, "cancel")
        self.draft = RecipeDraft()
        self.state = ViewState.LIST

    @_serialized
    def save_draft(self) -> Recipe:
        self._require(ViewState.ADD, "save")
        # ValidationError and StorageWriteError propagate with the draft intact.
        recipe = self.repository.create(self.draft)
        self.draft = RecipeDraft()
        self.state = ViewState.LIST
        return recipe

    # DETAIL

    @_serialized
    def back(self) -> None:
        self._require(ViewState.DETAIL, "back")
        self._return_to_list()

    @_serialized
    def request_delete(self, confirm: ConfirmDialog) -> bool:
        """Ask for confirmation and delete the selected recipe.

        Returns ``False`` when the user declines. A dialog that raises counts
        as declined.
        """

        self._require(ViewState.DETAIL, "delete")
        selected = self.selected
        try:
            confirmed = bool(confirm(DELETE_PROMPT))
        except Exception:
            logger.info("Delete confirmation dismissed", exc_info=True)
            confirmed = False
        if not confirmed:
            return False

        self.repository.delete(selected.id)
        # The delete listener has already moved us back to LIST.
        return True

    @_serialized
    def _on_recipe_deleted(self, recipe: Recipe) -> None:
        if self.selected is not None and self.selected.id == recipe.id:
            self._return_to_list()

    def _return_to_list(self) -> None:
        self.selected = None
        self.state = ViewState.LIST

    def _require(self, state: ViewState, trigger: str) -> None:
        if self.state is not state:
            raise InvalidTransition(self.state.value, trigger)
        if state is ViewState.DETAIL and self.selected is None:
            raise InvalidTransition(ViewState.LIST.value, trigger)


__all__ = ["ConfirmDialog", "ImagePicker", "ViewController", "ViewState"]
