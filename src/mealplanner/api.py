"""Meal planner API server."""

import time
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlmodel import Session

from mealplanner import __version__
from mealplanner.config.settings import settings
from mealplanner.db import close_db, get_session, init_db, load_meal_pool, set_meal_image, upsert_meals
from mealplanner.errors import InsufficientPoolError, LibraryParseError, MealPlannerError
from mealplanner.library.formatting import plan_slot_to_dict
from mealplanner.library.parsers import ParseReport, parse_meals_csv, parse_meals_json
from mealplanner.planner import MealPlanner
from mealplanner.selection.service import SelectionOptions

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    app.state.planner = MealPlanner()
    logger.info("Meal planner API started")

    yield

    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Database shutdown failed", error=str(e))


app = FastAPI(
    title="WHOOP Meal Planner API",
    description="Weekly meal plans from WHOOP health data and a curated meal library",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_planner(request: Request) -> MealPlanner:
    return request.app.state.planner


class GeneratePlanRequest(SelectionOptions):
    """Plan generation request. Selection options plus whose data to use."""

    user_id: str | None = Field(default=None, alias="userId")
    days: int | None = Field(default=None, ge=1, le=90)


class CsvUpload(BaseModel):
    csv_text: str = Field(alias="csvText")


class CachedImage(BaseModel):
    meal_id: str
    image_url: str


def _error(status_code: int, error: str, step: str, details: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "step": step, "details": details, **extra},
    )


def _store_report(session: Session, report: ParseReport) -> dict[str, Any]:
    upsert_meals(session, report.meals)
    return {
        "success": True,
        "total": report.total,
        "successful": [
            {"meal_id": meal.meal_id, "meal_name": meal.name} for meal in report.meals
        ],
        "failed": [failure.model_dump() for failure in report.failed],
        "success_rate": round(report.success_rate, 1),
    }


@app.post("/api/plan-ahead/generate-from-library")
async def generate_from_library(
    body: GeneratePlanRequest | None = None,
    session: Session = Depends(get_session),
    planner: MealPlanner = Depends(get_planner),
) -> Any:
    """Generate a weekly plan from the meal library based on WHOOP data."""
    start = time.perf_counter()
    body = body or GeneratePlanRequest(max_results=settings.planner.max_results)
    user_id = body.user_id or settings.planner.default_user_id
    options = SelectionOptions.model_validate(body.model_dump(exclude={"user_id", "days"}))

    try:
        plan = planner.generate(session, user_id, options, days=body.days)
    except InsufficientPoolError as e:
        return _error(
            400,
            "Insufficient meals in library",
            "library_validation",
            e.message,
            available=e.available,
            required=e.required,
            library_stats=planner.library_status(session).model_dump(),
        )
    except MealPlannerError as e:
        logger.error("Meal selection failed", error=str(e))
        return _error(422, "Failed to select meals from library", "meal_selection", e.message)

    result = plan.result
    duration_ms = round((time.perf_counter() - start) * 1000)
    logger.info(
        "Library-based meal generation completed",
        user_id=user_id,
        slots=len(result.meals),
        cached=plan.cached,
        duration_ms=duration_ms,
    )
    return {
        "success": True,
        "cached": plan.cached,
        "generation_type": "library_based",
        "meals": [plan_slot_to_dict(slot) for slot in result.meals.slots],
        "whoop_analysis": plan.analysis.model_dump(mode="json"),
        "whoop_insights": result.whoop_insights,
        "generation_summary": result.selection_summary,
        "library_stats": plan.library.model_dump(),
        "imageClassValidation": result.image_class_validation.model_dump(),
        "unfilled_slots": result.unfilled_slots,
        "seed": result.seed,
        "processing_time_ms": duration_ms,
        "step": "completed",
    }


@app.get("/api/plan-ahead/generate-from-library")
async def library_status(
    session: Session = Depends(get_session),
    planner: MealPlanner = Depends(get_planner),
) -> dict[str, Any]:
    """Check whether the library can back plan generation."""
    stats = planner.library_status(session)
    return {
        "success": True,
        "library_stats": stats.model_dump(),
        "ready_for_generation": stats.ready_for_generation,
        "capabilities": {
            "total_meals": stats.total_meals,
            "meals_with_images": stats.meals_with_images,
            "meal_types": list(stats.meals_by_type),
            "available_tags": stats.available_tags[:10],
        },
    }


@app.get("/api/whoop/analysis")
async def whoop_analysis(
    user_id: str | None = Query(None, description="WHOOP user id. Defaults to the main user."),
    days: int = Query(7, ge=1, le=90, description="Number of most recent days to analyze."),
    session: Session = Depends(get_session),
    planner: MealPlanner = Depends(get_planner),
) -> dict[str, Any]:
    analysis = planner.analysis_for(session, user_id or settings.planner.default_user_id, days)
    return {"success": True, "analysis": analysis.model_dump(mode="json")}


@app.post("/api/whoop/sync")
async def whoop_sync(
    user_id: str | None = Query(None),
    days: int = Query(7, ge=1, le=90),
) -> Any:
    """Pull recent WHOOP data into the database."""
    from mealplanner.adapters.base import AdapterError
    from mealplanner.adapters.whoop import sync_whoop_data

    try:
        stored = await sync_whoop_data(user_id or settings.planner.default_user_id, days)
    except AdapterError as e:
        logger.error("WHOOP sync failed", error=str(e))
        return _error(502, "Failed to sync WHOOP data", "whoop_sync", e.message)
    return {"success": True, "records_stored": stored}


@app.post("/api/meals/library/parse-csv")
async def parse_csv(upload: CsvUpload, session: Session = Depends(get_session)) -> Any:
    """Parse a CSV sheet of meals and store them in the library."""
    try:
        report = parse_meals_csv(upload.csv_text)
    except LibraryParseError as e:
        return _error(400, "Invalid CSV upload", "parse_csv", e.message)
    return _store_report(session, report)


@app.post("/api/meals/library/parse-json")
async def parse_json(payload: Any = Body(...), session: Session = Depends(get_session)) -> Any:
    """Parse a JSON export of meals and store them in the library."""
    try:
        report = parse_meals_json(payload)
    except LibraryParseError as e:
        return _error(400, "Invalid JSON structure", "parse_json", e.message)
    return _store_report(session, report)


@app.get("/api/meals/library/needs-image")
async def meals_needing_images(session: Session = Depends(get_session)) -> dict[str, Any]:
    """Library meals that are excluded from plans until they get an image."""
    meals = [m for m in load_meal_pool(session) if not m.has_image]
    return {
        "count": len(meals),
        "meals": [
            {"meal_id": m.meal_id, "name": m.name, "meal_type": m.meal_type} for m in meals
        ],
    }


@app.post("/api/images/cached")
async def cache_image(
    image: CachedImage, planner: MealPlanner = Depends(get_planner)
) -> dict[str, Any]:
    """Hold a generated image URL until it can be written to the library."""
    planner.image_cache.insert(image.meal_id, image.image_url)
    return {"success": True, "cached": len(planner.image_cache)}


@app.post("/api/images/process-cached")
async def process_cached_images(
    session: Session = Depends(get_session),
    planner: MealPlanner = Depends(get_planner),
) -> dict[str, Any]:
    """Write cached image URLs to their meals and drop them from the cache."""
    applied, unknown = [], []
    for meal_id in planner.image_cache.keys():
        image_url = planner.image_cache.get(meal_id)
        if image_url and set_meal_image(session, meal_id, image_url):
            applied.append(meal_id)
            planner.image_cache.evict(meal_id)
        else:
            unknown.append(meal_id)
    return {"success": True, "applied": applied, "unknown": unknown}


@app.get("/api/status")
async def get_status() -> dict[str, Any]:
    """Get WHOOP connection status."""
    from mealplanner.adapters.whoop import WhoopAdapter

    adapter = WhoopAdapter()
    try:
        connected = await adapter.connect()
        status = {"connected": connected, "status": "online" if connected else "offline"}
        await adapter.disconnect()
    except Exception as e:
        status = {"connected": False, "status": "error", "error": str(e)}
    return {"adapters": {"whoop": status}, "version": __version__}


def run_server(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the API server."""
    import uvicorn

    from mealplanner.config.log import configure_logging

    configure_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
