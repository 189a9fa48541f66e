"""Parse meal library uploads from CSV sheets and JSON exports.

Both parsers are forgiving per row: a row that cannot be turned into a
``LibraryMeal`` is recorded in ``ParseReport.failed`` and the rest of the
batch carries on. Only an upload that is not meal data at all raises.
"""

import csv
import io
import json
import re
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from mealplanner.errors import LibraryParseError
from mealplanner.library.formatting import (
    BREAKFAST,
    DINNER,
    LUNCH,
    LUNCH_DINNER,
    SNACK,
    format_ingredients,
    format_instructions,
    format_nutrition,
    normalize_meal_type,
    split_list_field,
)
from mealplanner.models import LibraryMeal

logger = structlog.get_logger()

ID_PREFIXES = {BREAKFAST: "B", LUNCH: "L", SNACK: "S", DINNER: "D", LUNCH_DINNER: "LD"}

# Canonical field -> accepted CSV header names (lower-cased)
CSV_COLUMNS = {
    "meal_id": ("meal_id", "id", "code"),
    "name": ("name", "meal_name", "title"),
    "meal_type": ("meal_type", "type", "category"),
    "tagline": ("tagline", "subtitle", "description"),
    "serving_size": ("serving_size", "servings", "serves"),
    "prep_time": ("prep_time", "preptime"),
    "ingredients": ("ingredients",),
    "method": ("instructions", "method", "directions", "steps"),
    "tags": ("tags",),
    "why_this_meal": ("why_this_meal", "benefits", "why_helpful"),
    "image_url": ("image_url", "imageurl", "image"),
}

NUTRITION_COLUMNS = ("calories", "protein", "carbs", "carbohydrates", "fat", "fiber", "sodium")

# Keyword in free text -> inferred tag
TAG_KEYWORDS = (
    (("recovery", "muscle repair"), "Recovery"),
    (("sleep", "melatonin", "tryptophan"), "Better Sleep"),
    (("performance", "energy", "endurance"), "Better Performance"),
    (("anti-inflammatory", "inflammation"), "Anti-Inflammatory"),
    (("high protein", "protein-rich"), "High-Protein"),
    (("low carb", "low-carb"), "Low-Carb"),
)


class ParseFailure(BaseModel):
    index: int
    meal_id: str
    error: str


class ParseReport(BaseModel):
    meals: list[LibraryMeal] = Field(default_factory=list)
    failed: list[ParseFailure] = Field(default_factory=list)
    total: int = 0

    @property
    def success_rate(self) -> float:
        return len(self.meals) / self.total * 100 if self.total else 0.0


def infer_tags(text: str) -> list[str]:
    """Guess benefit tags from descriptive text."""
    lowered = text.lower()
    tags = [tag for keywords, tag in TAG_KEYWORDS if any(k in lowered for k in keywords)]
    return tags or ["Better Performance"]


def make_meal_id(meal_type: str, name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"{ID_PREFIXES[meal_type]}-{slug}"


def _column(row: dict[str, str], field: str) -> str:
    for header in CSV_COLUMNS[field]:
        value = row.get(header)
        if value:
            return value.strip()
    return ""


def _csv_row_to_meal(row: dict[str, str]) -> LibraryMeal:
    name = _column(row, "name")
    if not name:
        raise ValueError("Missing meal name")

    try:
        meal_type = normalize_meal_type(_column(row, "meal_type"))
    except ValueError:
        meal_type = DINNER

    why = _column(row, "why_this_meal")
    tags_text = _column(row, "tags")
    tags = split_list_field(tags_text) if tags_text else infer_tags(why)

    nutrition = {key: row[key] for key in NUTRITION_COLUMNS if row.get(key)}

    return LibraryMeal(
        meal_id=_column(row, "meal_id") or make_meal_id(meal_type, name),
        name=name,
        tagline=_column(row, "tagline") or None,
        meal_type=meal_type,
        serving_size=_column(row, "serving_size") or "1 serving",
        prep_time=_column(row, "prep_time") or None,
        ingredients=format_ingredients(split_list_field(_column(row, "ingredients"))),
        method=split_list_field(_column(row, "method")),
        why_this_meal=why or None,
        nutrition=format_nutrition(nutrition),
        tags=tags,
        image_url=_column(row, "image_url") or None,
    )


def parse_meals_csv(text: str) -> ParseReport:
    """Parse a CSV sheet with one meal per row and a header line."""
    reader = csv.DictReader(io.StringIO(text.strip()))
    if not reader.fieldnames:
        raise LibraryParseError("CSV upload has no header row")
    reader.fieldnames = [h.strip().lower() for h in reader.fieldnames]

    report = ParseReport()
    for index, row in enumerate(reader):
        report.total += 1
        try:
            report.meals.append(_csv_row_to_meal(row))
        except (ValidationError, ValueError) as e:
            report.failed.append(
                ParseFailure(index=index, meal_id=_column(row, "meal_id") or "unknown", error=str(e))
            )

    logger.info("Parsed CSV meals", total=report.total, failed=len(report.failed))
    return report


def _json_item_to_meal(item: Any) -> LibraryMeal:
    if not isinstance(item, dict):
        raise ValueError("Meal entry is not an object")

    name = item.get("meal_name") or item.get("name")
    missing = [
        field
        for field, value in (("meal_id", item.get("meal_id")), ("meal_name", name), ("meal_type", item.get("meal_type")))
        if not value
    ]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    raw_ingredients = item.get("ingredients")
    ingredients = format_ingredients(raw_ingredients)
    if not ingredients:
        raise ValueError("Invalid ingredients structure")

    method = format_instructions(item.get("method") or item.get("instructions"))
    if not method:
        raise ValueError("Invalid method structure")

    serving_size = item.get("serving_size")
    if not serving_size and isinstance(raw_ingredients, dict):
        serving_size = raw_ingredients.get("serving_size")

    nutrition = item.get("nutrition") or item.get("nutrition_details")
    tags = item.get("tags")

    return LibraryMeal(
        meal_id=str(item["meal_id"]),
        name=name,
        tagline=item.get("tagline"),
        meal_type=item["meal_type"],
        serving_size=serving_size or "1 serving",
        prep_time=item.get("prep_time"),
        ingredients=ingredients,
        method=method,
        why_this_meal=item.get("why_this_meal"),
        nutrition=format_nutrition(nutrition),
        tags=tags if isinstance(tags, list) else [],
        image_url=item.get("image_url"),
    )


def parse_meals_json(payload: str | bytes | dict[str, Any] | list[Any]) -> ParseReport:
    """Parse a JSON export: one meal object, a list, or ``{"meals": [...]}``.

    Raises:
        LibraryParseError: If the payload is not JSON or has none of these shapes.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise LibraryParseError(f"Invalid JSON: {e}") from e

    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("meals"), list):
        items = payload["meals"]
    elif isinstance(payload, dict) and payload.get("meal_id"):
        items = [payload]
    else:
        raise LibraryParseError(
            "Invalid JSON structure. Expected meal object, array of meals, "
            "or object with meals array."
        )

    report = ParseReport(total=len(items))
    for index, item in enumerate(items):
        try:
            report.meals.append(_json_item_to_meal(item))
        except (ValidationError, ValueError) as e:
            meal_id = item.get("meal_id") if isinstance(item, dict) else None
            report.failed.append(ParseFailure(index=index, meal_id=str(meal_id or "unknown"), error=str(e)))

    logger.info("Parsed JSON meals", total=report.total, failed=len(report.failed))
    return report
