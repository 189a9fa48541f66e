"""Exceptions raised by the analysis, selection and library layers."""


class MealPlannerError(Exception):
    """Base exception for meal planner errors."""

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        self.message = message
        super().__init__(f"[{component}] {message}")


class InsufficientDataError(MealPlannerError):
    """Raised when analysis is requested for an empty record list."""

    def __init__(self, message: str = "No WHOOP data available for analysis") -> None:
        super().__init__("analyzer", message)


class InsufficientPoolError(MealPlannerError):
    """Raised when too few image-bearing meals exist to draw a plan."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            "selection",
            f"Only {available} meals with images available. "
            f"Need at least {required} meals to generate a diverse meal plan.",
        )


class InvalidAnalysisError(MealPlannerError):
    """Raised when a WHOOP analysis object is missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__("selection", message)


class NoMatchingMealsError(MealPlannerError):
    """Raised when caller filters leave no meals to choose from."""

    def __init__(self, message: str = "No meals found matching selection criteria") -> None:
        super().__init__("selection", message)


class LibraryParseError(MealPlannerError):
    """Raised when an upload cannot be interpreted as meal data at all."""

    def __init__(self, message: str) -> None:
        super().__init__("library", message)
