"""Shared payloads for processor and entry point tests."""

import copy

import pytest

# One Síclo class, 45 of 50 spots booked at 07:00 Lima time.
# The formula has junior requirements the instructor does not reach,
# so the class is priced with the INSTRUCTOR table: 45 × 3 = 135.
BASE_PAYLOAD = {
    "instructor_id": "i1",
    "period_id": "p1",
    "tenant_id": "t1",
    "data": {
        "instructors": [
            {"id": "i1", "name": "Ana Torres"},
        ],
        "disciplines": [
            {"id": "d1", "name": "Síclo"},
            {"id": "d2", "name": "Barre"},
        ],
        "classes": [
            {
                "id": "c1",
                "instructorId": "i1",
                "disciplineId": "d1",
                "periodId": "p1",
                "date": "2025-03-03T12:00:00Z",
                "studio": "Reducto",
                "spots": 50,
                "totalReservations": 45,
            },
        ],
        "formulas": [
            {
                "disciplineId": "d1",
                "periodId": "p1",
                "categoryRequirements": {
                    "EMBAJADOR_JUNIOR": {
                        "ocupacion": 60,
                        "clases": 10,
                        "localesEnLima": 1,
                        "dobleteos": 0,
                        "horariosNoPrime": 0,
                        "participacionEventos": False,
                        "lineamientos": False,
                    },
                },
                "paymentParameters": {
                    "INSTRUCTOR": {
                        "tarifas": [
                            {"numeroReservas": 20, "tarifa": 5},
                            {"numeroReservas": 50, "tarifa": 3},
                        ],
                        "tarifaFullHouse": 4,
                    },
                    "EMBAJADOR_JUNIOR": {
                        "tarifas": [
                            {"numeroReservas": 20, "tarifa": 6},
                            {"numeroReservas": 50, "tarifa": 4},
                        ],
                        "tarifaFullHouse": 5,
                    },
                },
            },
        ],
    },
}


@pytest.fixture
def payment_payload():
    """A fresh copy of the single instructor payload."""
    return copy.deepcopy(BASE_PAYLOAD)
