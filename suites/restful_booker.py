# suites/restful_booker.py
"""
Contract suites for the restful-booker API (https://restful-booker.herokuapp.com).

- auth_suite():    authentication only
- health_suite():  GET /ping
- booking_suite(): setup = auth; create, read, search, update, partial
                   update, delete and read-after-delete of one booking

Usage:
    python -m suites.restful_booker
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from typing import Any, Dict, Optional

from faker import Faker

from contract_runner import (
    HttpxTransport,
    Settings,
    Suite,
    SuiteRunner,
    get_settings,
    setup_logging,
    spec,
)

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

# ==================== Schemas ====================

AUTH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "token": {"type": "string"},
    },
    "required": ["token"],
}

BOOKING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "firstname": {"type": "string"},
        "lastname": {"type": "string"},
        "totalprice": {"type": "integer"},
        "depositpaid": {"type": "boolean"},
        "bookingdates": {
            "type": "object",
            "properties": {
                "checkin": {"type": "string"},
                "checkout": {"type": "string"},
            },
            "required": ["checkin", "checkout"],
        },
        "additionalneeds": {"type": "string"},
    },
    "required": ["firstname", "lastname", "totalprice", "depositpaid", "bookingdates"],
}

CREATED_BOOKING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "bookingid": {"type": "integer"},
        "booking": BOOKING_SCHEMA,
    },
    "required": ["bookingid", "booking"],
}

BOOKING_IDS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {"bookingid": {"type": "integer"}},
        "required": ["bookingid"],
    },
}


# ==================== Test data ====================

def booking_payload(fake: Optional[Faker] = None) -> Dict[str, Any]:
    """A booking with a first name unlikely to collide with other users' data."""
    fake = fake or Faker()
    checkin = fake.date_between(start_date="+1d", end_date="+60d")
    checkout = checkin + timedelta(days=fake.random_int(min=1, max=14))
    return {
        "firstname": f"{fake.first_name()}{fake.lexify('????').capitalize()}",
        "lastname": fake.last_name(),
        "totalprice": fake.random_int(min=50, max=2000),
        "depositpaid": fake.pybool(),
        "bookingdates": {
            "checkin": checkin.isoformat(),
            "checkout": checkout.isoformat(),
        },
        "additionalneeds": fake.random_element(["Breakfast", "Lunch", "Late checkout", "Airport transfer"]),
    }


# ==================== Cases ====================

def auth_case(settings: Settings):
    return (
        spec("Deve obter um token de autenticação com sucesso")
        .post("/auth")
        .with_headers("Content-Type", "application/json")
        .with_json({
            "username": settings.auth_username,
            "password": settings.auth_password,
        })
        .expect_status(200)
        .expect_json_schema(AUTH_SCHEMA)
        .stores("authToken", "token")
        .build()
    )


def auth_suite(settings: Optional[Settings] = None) -> Suite:
    settings = settings or get_settings()
    return Suite(
        name="Restful-booker API - Teste de Autenticação",
        cases=[auth_case(settings)],
        base_url=settings.base_url,
    )


def health_suite(settings: Optional[Settings] = None) -> Suite:
    settings = settings or get_settings()
    return Suite(
        name="restful-booker health",
        cases=[spec("health check").get("/ping").expect_status(201).build()],
        base_url=settings.base_url,
    )


def booking_suite(settings: Optional[Settings] = None, fake: Optional[Faker] = None) -> Suite:
    settings = settings or get_settings()
    fake = fake or Faker()

    created = booking_payload(fake)
    updated = booking_payload(fake)
    patch = {"firstname": booking_payload(fake)["firstname"], "additionalneeds": "Dinner"}
    final = {**updated, **patch}

    by_id = spec().with_path_params(id="$S{bookingId}")
    authed = by_id.with_cookies("token", "$S{authToken}")

    cases = [
        spec("health check").get("/ping").expect_status(201).build(),

        spec("create booking")
        .post("/booking")
        .with_json(created)
        .expect_status(200)
        .expect_json_schema(CREATED_BOOKING_SCHEMA)
        .expect_json_like(created, path="booking")
        .stores("bookingId", "bookingid")
        .build(),

        by_id.named("get booking")
        .get("/booking/{id}")
        .expect_status(200)
        .expect_json_schema(BOOKING_SCHEMA)
        .expect_json_like(created)
        .build(),

        spec("find booking by name")
        .get("/booking")
        .with_query_params(firstname=created["firstname"], lastname=created["lastname"])
        .expect_status(200)
        .expect_json_schema(BOOKING_IDS_SCHEMA)
        .expect_json_length(1)
        .expect_json_like([{"bookingid": "$S{bookingId}"}])
        .build(),

        by_id.named("update booking without token is forbidden")
        .put("/booking/{id}")
        .with_json(updated)
        .expect_status(403)
        .build(),

        authed.named("update booking")
        .put("/booking/{id}")
        .with_json(updated)
        .expect_status(200)
        .expect_json_schema(BOOKING_SCHEMA)
        .expect_json_like(updated)
        .build(),

        authed.named("partially update booking")
        .patch("/booking/{id}")
        .with_json(patch)
        .expect_status(200)
        .expect_json_like(final)
        .build(),

        authed.named("delete booking")
        .delete("/booking/{id}")
        .expect_status(settings.delete_expected_status)
        .build(),

        by_id.named("get deleted booking")
        .get("/booking/{id}")
        .expect_status(404)
        .build(),

        spec("find deleted booking by name")
        .get("/booking")
        .with_query_params(firstname=final["firstname"], lastname=final["lastname"])
        .expect_status(200)
        .expect_json_length(0)
        .build(),
    ]

    return Suite(
        name="restful-booker bookings",
        setup=auth_case(settings),
        cases=cases,
        base_url=settings.base_url,
        default_headers=dict(JSON_HEADERS),
    )


# ==================== Usage Example ====================

if __name__ == "__main__":
    setup_logging()
    settings = get_settings()

    with HttpxTransport.from_settings(settings) as transport:
        runner = SuiteRunner(transport, settings=settings)
        results = runner.run_suites([auth_suite(settings), booking_suite(settings)])

    for res in results:
        print(res.to_json())

    sys.exit(0 if all(r.passed for r in results) else 1)
