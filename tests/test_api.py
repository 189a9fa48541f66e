"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from conftest import make_meal, make_pool, make_records
from mealplanner.api import app
from mealplanner.db import configure_engine, get_engine, upsert_health_records

GENERATE = "/api/plan-ahead/generate-from-library"


def meal_payload(meal):
    return {
        "meal_id": meal.meal_id,
        "meal_name": meal.name,
        "meal_type": meal.meal_type,
        "ingredients": [i.model_dump() for i in meal.ingredients],
        "method": meal.method,
        "tags": meal.tags,
        "image_url": meal.image_url,
    }


@pytest.fixture
def client():
    configure_engine("sqlite://")
    with TestClient(app) as test_client:
        yield test_client


def upload(client, meals):
    response = client.post(
        "/api/meals/library/parse-json", json={"meals": [meal_payload(m) for m in meals]}
    )
    assert response.status_code == 200
    return response.json()


def test_library_status_empty(client):
    response = client.get(GENERATE)

    assert response.status_code == 200
    data = response.json()
    assert data["ready_for_generation"] is False
    assert data["library_stats"]["total_meals"] == 0


def test_generate_rejects_small_library(client):
    upload(client, make_pool()[:15])

    response = client.post(GENERATE, json={})

    assert response.status_code == 400
    data = response.json()
    assert data["step"] == "library_validation"
    assert data["available"] == 15
    assert data["required"] == 20
    assert "15" in data["details"]
    assert data["library_stats"]["total_meals"] == 15


def test_generate_plan_and_cache(client):
    upload(client, make_pool())
    assert client.get(GENERATE).json()["ready_for_generation"] is True

    response = client.post(GENERATE, json={"timestamp": 42})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["cached"] is False
    assert data["step"] == "completed"
    assert data["seed"] == "42"
    assert len(data["meals"]) == 28
    assert all(meal["hasImage"] for meal in data["meals"])
    assert data["imageClassValidation"]["valid"] is True
    assert data["imageClassValidation"]["class_a"] == 28
    assert data["whoop_analysis"]["data_points"] == 0
    assert data["unfilled_slots"] == []

    again = client.post(GENERATE, json={"timestamp": 42}).json()
    assert again["cached"] is True
    assert [m["meal_id"] for m in again["meals"]] == [m["meal_id"] for m in data["meals"]]

    fresh = client.post(GENERATE, json={"timestamp": 42, "regenerate": True}).json()
    assert fresh["cached"] is False
    assert [m["meal_id"] for m in fresh["meals"]] == [m["meal_id"] for m in data["meals"]]


def test_generate_with_camel_case_options(client):
    upload(client, make_pool())

    response = client.post(GENERATE, json={"mealTypes": ["breakfast"], "maxResults": 5})

    assert response.status_code == 200
    meals = response.json()["meals"]
    assert len(meals) == 7
    assert {m["meal_type"] for m in meals} == {"Breakfast"}


def test_generate_with_unmatched_filters(client):
    upload(client, make_pool())

    response = client.post(GENERATE, json={"tags": ["Keto"]})

    assert response.status_code == 422
    assert response.json()["step"] == "meal_selection"


def test_whoop_analysis_uses_stored_records(client):
    with Session(get_engine()) as session:
        upsert_health_records(session, make_records([40, 42, 45, 48, 70, 75, 80], user_id="athlete"))

    response = client.get("/api/whoop/analysis", params={"user_id": "athlete"})

    assert response.status_code == 200
    analysis = response.json()["analysis"]
    assert analysis["data_points"] == 7
    assert analysis["trends"]["recovery"] == "improving"
    assert analysis["date_range"]["end"] == "2026-01-07"


def test_parse_csv_upload(client):
    csv_text = "name,meal_type,ingredients,instructions\nBerry Smoothie,Snack,berries; yogurt,Blend\n,Lunch,bread,Toast\n"

    response = client.post("/api/meals/library/parse-csv", json={"csvText": csv_text})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["successful"] == [{"meal_id": "S-berry-smoothie", "meal_name": "Berry Smoothie"}]
    assert data["failed"][0]["index"] == 1
    assert data["success_rate"] == 50.0
    assert client.get(GENERATE).json()["library_stats"]["total_meals"] == 1


def test_parse_json_invalid_structure(client):
    response = client.post("/api/meals/library/parse-json", json={"recipes": []})

    assert response.status_code == 400
    assert response.json()["step"] == "parse_json"


def test_cached_images_are_applied(client):
    upload(client, [make_meal("Snack", 1, image=False), make_meal("Lunch", 1)])
    needs = client.get("/api/meals/library/needs-image").json()
    assert needs["count"] == 1
    assert needs["meals"][0]["meal_id"] == "S-0001"

    client.post("/api/images/cached", json={"meal_id": "S-0001", "image_url": "https://img.example.com/s1.png"})
    cached = client.post("/api/images/cached", json={"meal_id": "Z-0001", "image_url": "https://img.example.com/z.png"})
    assert cached.json()["cached"] == 2

    processed = client.post("/api/images/process-cached").json()

    assert processed["applied"] == ["S-0001"]
    assert processed["unknown"] == ["Z-0001"]
    assert client.get("/api/meals/library/needs-image").json()["count"] == 0


def test_status(client):
    data = client.get("/api/status").json()

    assert "whoop" in data["adapters"]
    assert data["version"]
