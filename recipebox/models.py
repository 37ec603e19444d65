from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from .errors import ValidationError

CATEGORIES = ("Breakfast", "Lunch", "Dinner", "Snack", "Dessert")
DEFAULT_CATEGORY = "General"
REQUIRED_FIELDS = ("title", "ingredients")

# Attribute name -> key used in the stored JSON objects.
JSON_KEYS = {
    "id": "id",
    "title": "title",
    "image": "image",
    "category": "category",
    "servings": "servings",
    "prep_time": "prepTime",
    "cook_time": "cookTime",
    "description": "description",
    "ingredients": "ingredients",
    "instructions": "instructions",
}


@dataclass(frozen=True)
class Recipe:
    """Domain object representing a stored recipe."""

    id: str
    title: str
    ingredients: str
    image: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    servings: str = ""
    prep_time: str = ""
    cook_time: str = ""
    description: str = ""
    instructions: str = ""

    def to_dict(self) -> Dict[str, Optional[str]]:
        data = asdict(self)
        return {JSON_KEYS[name]: data[name] for name in JSON_KEYS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recipe":
        """Build a recipe from its stored JSON object.

        Missing optional keys take their defaults. Ingredients written as a
        list of lines are joined back into a single text block.
        """

        ingredients = data.get("ingredients") or ""
        if isinstance(ingredients, list):
            ingredients = "\n".join(str(line) for line in ingredients)

        image = data.get("image")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            ingredients=str(ingredients),
            image=str(image) if image else None,
            category=str(data.get("category") or DEFAULT_CATEGORY),
            servings=str(data.get("servings") or ""),
            prep_time=str(data.get("prepTime") or ""),
            cook_time=str(data.get("cookTime") or ""),
            description=str(data.get("description") or ""),
            instructions=str(data.get("instructions") or ""),
        )


EDITABLE_FIELDS = tuple(f.name for f in fields(Recipe) if f.name != "id")

# Stored key names are accepted too, e.g. "prepTime" for "prep_time".
FIELD_ALIASES = {key: name for name, key in JSON_KEYS.items() if name in EDITABLE_FIELDS}


@dataclass
class RecipeDraft:
    """Partially filled recipe held by the add form."""

    values: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RecipeDraft":
        draft = cls()
        for name, value in data.items():
            draft.set_field(name, value)
        return draft

    @property
    def is_empty(self) -> bool:
        return not self.values

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.values.get(name, default)

    def set_field(self, name: str, value: Optional[str]) -> None:
        name = FIELD_ALIASES.get(name, name)
        if name not in EDITABLE_FIELDS:
            raise ValidationError((), f"Unknown recipe field '{name}'.")
        self.values[name] = value

    def missing_fields(self) -> tuple:
        return tuple(name for name in REQUIRED_FIELDS if not (self.values.get(name) or "").strip())

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ValidationError(missing)

    def to_recipe(self, recipe_id: str) -> Recipe:
        self.validate()
        values = self.values
        return Recipe(
            id=recipe_id,
            title=values["title"].strip(),
            ingredients=values["ingredients"].strip(),
            image=values.get("image") or None,
            category=(values.get("category") or "").strip() or DEFAULT_CATEGORY,
            servings=values.get("servings") or "",
            prep_time=values.get("prep_time") or "",
            cook_time=values.get("cook_time") or "",
            description=values.get("description") or "",
            instructions=values.get("instructions") or "",
        )

    def clear(self) -> None:
        self.values.clear()


__all__ = ["CATEGORIES", "DEFAULT_CATEGORY", "EDITABLE_FIELDS", "Recipe", "RecipeDraft"]
