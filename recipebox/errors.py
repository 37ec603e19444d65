from __future__ import annotations

from typing import Iterable


class RecipeBoxError(Exception):
    """Base class for every error raised by the recipe box."""


class ValidationError(RecipeBoxError):
    """A draft is missing one or more required fields."""

    def __init__(self, missing_fields: Iterable[str], message: str | None = None) -> None:
        self.missing_fields = tuple(missing_fields)
        if message is None:
            names = ", ".join(field.replace("_", " ").title() for field in self.missing_fields)
            message = f"Missing required fields: {names}."
        super().__init__(message)


class StorageReadError(RecipeBoxError):
    """The durable recipe blob could not be read or decoded."""


class StorageWriteError(RecipeBoxError):
    """The durable recipe blob could not be written."""


class NotFoundError(RecipeBoxError, KeyError):
    """No recipe with the requested id exists."""

    def __init__(self, recipe_id: str) -> None:
        self.recipe_id = recipe_id
        super().__init__(f"Recipe '{recipe_id}' does not exist.")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return self.args[0]


class InvalidTransition(RecipeBoxError):
    """A view trigger was used from a state that does not offer it."""

    def __init__(self, state: object, trigger: str) -> None:
        self.state = state
        self.trigger = trigger
        super().__init__(f"'{trigger}' is not available from the {state} view.")


__all__ = [
    "InvalidTransition",
    "NotFoundError",
    "RecipeBoxError",
    "StorageReadError",
    "StorageWriteError",
    "ValidationError",
]
