"""Shared helpers for normalising meal library data.

Library meals arrive from CSV sheets, JSON exports and the database in
slightly different shapes. Everything that turns those shapes into the
canonical forms used by the models and the API lives here.
"""

import re
from typing import Any

BREAKFAST = "Breakfast"
LUNCH = "Lunch"
SNACK = "Snack"
DINNER = "Dinner"
LUNCH_DINNER = "Lunch/Dinner"

# Canonical meal type order, also used for grouping during selection
MEAL_TYPES = (BREAKFAST, LUNCH, SNACK, DINNER, LUNCH_DINNER)

DEFAULT_NUTRITION = {
    "calories": 400,
    "protein": 20,
    "carbs": 40,
    "fat": 15,
    "fiber": 5,
    "sodium": 500,
}

_NUTRITION_KEYS = {
    "calories": ("calories", "Calories", "kcal", "energy"),
    "protein": ("protein", "Protein"),
    "carbs": ("carbs", "Carbs", "carbohydrates", "Carbohydrates"),
    "fat": ("fat", "Fat"),
    "fiber": ("fiber", "Fiber", "fibre"),
    "sodium": ("sodium", "Sodium"),
}

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")


def normalize_meal_type(value: str) -> str:
    """Map a free-form meal type label onto a canonical meal type.

    Raises:
        ValueError: If the label names no known meal type.
    """
    text = (value or "").strip().lower()
    has_lunch = "lunch" in text
    has_dinner = "dinner" in text or "supper" in text
    if has_lunch and has_dinner:
        return LUNCH_DINNER
    if "breakfast" in text:
        return BREAKFAST
    if has_lunch:
        return LUNCH
    if has_dinner:
        return DINNER
    if "snack" in text:
        return SNACK
    raise ValueError(f"Unknown meal type: {value!r}")


def normalize_tag(tag: str) -> str:
    """Case- and separator-insensitive key for tag comparison."""
    return re.sub(r"[\s_\-]+", " ", tag.strip().lower())


def parse_time(value: str | int | None) -> int | None:
    """Extract the leading number of minutes from strings like '5 minutes'."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _NUMBER.search(value)
    return int(float(match.group(1))) if match else None


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if match:
            return float(match.group(1))
    return None


def format_nutrition(details: Any) -> dict[str, float]:
    """Flatten nutrition facts into calories and macro grams.

    Accepts either a flat mapping or the ``{"summary": ..., "details": {...}}``
    export format. Missing or unparseable values fall back to defaults.
    """
    if not isinstance(details, dict):
        return dict(DEFAULT_NUTRITION)

    source = details.get("details") if isinstance(details.get("details"), dict) else details
    nutrition: dict[str, float] = {}
    for field, keys in _NUTRITION_KEYS.items():
        value = None
        for key in keys:
            if key in source:
                value = _to_number(source[key])
                if value is not None:
                    break
        nutrition[field] = value if value is not None else DEFAULT_NUTRITION[field]
    return nutrition


def format_ingredients(ingredients: Any) -> list[dict[str, Any]]:
    """Normalise ingredient data into ``{item, quantity, optional, notes}`` dicts.

    Handles ``{"serving_size": ..., "list": [...]}`` exports, plain lists of
    strings and lists of dicts keyed by ``item``/``name``.
    """
    if isinstance(ingredients, dict):
        ingredients = ingredients.get("list", [])
    if not isinstance(ingredients, list):
        return []

    formatted = []
    for ing in ingredients:
        if isinstance(ing, str):
            if ing.strip():
                formatted.append(
                    {"item": ing.strip(), "quantity": "as needed", "optional": False, "notes": None}
                )
        elif isinstance(ing, dict):
            item = ing.get("item") or ing.get("name")
            if not item:
                continue
            formatted.append(
                {
                    "item": str(item).strip(),
                    "quantity": str(ing.get("quantity") or ing.get("amount") or "as needed"),
                    "optional": bool(ing.get("optional", False)),
                    "notes": ing.get("notes"),
                }
            )
    return formatted


def format_instructions(method: Any) -> list[str]:
    """Normalise a method into ordered, non-empty steps."""
    if isinstance(method, list):
        return [step.strip() for step in method if isinstance(step, str) and step.strip()]
    if isinstance(method, str):
        return [step.strip() for step in method.split(".") if step.strip()]
    return []


def split_list_field(text: str) -> list[str]:
    """Split a spreadsheet cell holding a list.

    Newlines win over semicolons, semicolons over pipes, and commas are the
    last resort. Leading bullet markers are removed.
    """
    if not text:
        return []
    for separator in ("\n", ";", "|"):
        if separator in text:
            items = text.split(separator)
            break
    else:
        items = text.split(",")
    cleaned = (re.sub(r"^[-•*]\s*", "", item.strip()) for item in items)
    return [item for item in cleaned if item]


def plan_slot_to_dict(slot: Any) -> dict[str, Any]:
    """Render a planned meal in the shape the plan endpoints return."""
    meal = slot.meal
    nutrition = meal.nutrition.model_dump()
    return {
        "day": slot.day,
        "meal_type": slot.meal_type,
        "meal_id": meal.meal_id,
        "name": meal.name,
        "description": meal.tagline or meal.why_this_meal or "Delicious and nutritious meal",
        "ingredients": [
            {"name": ing.item, "amount": ing.quantity} for ing in meal.ingredients
        ],
        "instructions": meal.method or ["Follow recipe instructions"],
        "prep_time": parse_time(meal.prep_time) or 15,
        "servings": parse_time(meal.serving_size) or 1,
        "nutrition": nutrition,
        "tags": list(meal.tags),
        "imageUrl": meal.image_url,
        "imageClass": meal.image_class,
        "hasImage": meal.has_image,
        "reused": slot.reused,
    }
