"""Meal selection from the library."""

from mealplanner.selection.criteria import SelectionCriteria, build_criteria
from mealplanner.selection.service import (
    SLOT_TYPES,
    ImageClassValidation,
    SelectionOptions,
    SelectionResult,
    assign_slots,
    diversify,
    filter_pool,
    order_pool,
    select_meals,
    validate_image_classes,
)

__all__ = [
    "ImageClassValidation",
    "SLOT_TYPES",
    "SelectionCriteria",
    "SelectionOptions",
    "SelectionResult",
    "assign_slots",
    "build_criteria",
    "diversify",
    "filter_pool",
    "order_pool",
    "select_meals",
    "validate_image_classes",
]
