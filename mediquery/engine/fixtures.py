# MediQuery - Fallback Fixtures
# ==============================
"""
Fixed fallback schema and mock rows.

Used when the live store is unreachable, has no tables, or cannot answer
a query. The fixtures are immutable; callers always receive copies.
"""

from typing import Dict, Optional, Tuple, Any

from .models import Schema, Table, Column, ResultSet


MOCK_ROWS: Dict[str, Tuple[Dict[str, Any], ...]] = {
    "hospitals": (
        {"id": 1, "name": "General Hospital", "city": "New York", "beds": 500},
        {"id": 2, "name": "Community Medical", "city": "Boston", "beds": 200},
        {"id": 3, "name": "Central Hospital", "city": "Chicago", "beds": 350},
    ),
    "doctors": (
        {"id": 1, "name": "Dr. Smith", "phone_number": "555-123-4567",
         "email": "smith@hospital.com", "hospital_id": 1},
        {"id": 2, "name": "Dr. Johnson", "phone_number": "555-234-5678",
         "email": "johnson@hospital.com", "hospital_id": 2},
        {"id": 3, "name": "Dr. Williams", "phone_number": "555-345-6789",
         "email": "williams@hospital.com", "hospital_id": 3},
    ),
    "patients": (
        {"id": 1, "name": "John Doe", "age": 45, "doctor_id": 1},
        {"id": 2, "name": "Jane Smith", "age": 38, "doctor_id": 2},
        {"id": 3, "name": "Bob Johnson", "age": 67, "doctor_id": 1},
        {"id": 4, "name": "Alice Brown", "age": 52, "doctor_id": 3},
        {"id": 5, "name": "Tom Wilson", "age": 29, "doctor_id": 2},
        {"id": 6, "name": "Sarah Lee", "age": 41, "doctor_id": 3},
    ),
}


def get_mock_rows(table: str) -> Optional[ResultSet]:
    """Copies of the mock rows for a table, or None if there are none."""
    rows = MOCK_ROWS.get((table or "").lower())
    if rows is None:
        return None
    return [dict(row) for row in rows]


def get_fallback_schema() -> Schema:
    """The illustrative schema served when introspection is not possible."""
    return Schema(tables=[
        Table(
            name="hospitals",
            description="Healthcare facilities",
            columns=[
                Column("id", "integer", "Primary key"),
                Column("name", "text", "Hospital name"),
                Column("city", "text", "City location"),
                Column("beds", "integer", "Number of beds"),
            ],
            sample_data=get_mock_rows("hospitals"),
        ),
        Table(
            name="doctors",
            description="Medical professionals who treat patients",
            columns=[
                Column("id", "integer", "Primary key"),
                Column("name", "text", "Doctor name"),
                Column("phone_number", "text", "Contact phone number"),
                Column("email", "text", "Email address"),
                Column("hospital_id", "integer",
                       "Foreign key to hospitals table, links doctor to their hospital"),
            ],
            sample_data=get_mock_rows("doctors"),
        ),
        Table(
            name="patients",
            description="People receiving medical care, each assigned to a doctor",
            columns=[
                Column("id", "integer", "Primary key"),
                Column("name", "text", "Patient name"),
                Column("age", "integer", "Patient age"),
                Column("doctor_id", "integer",
                       "Foreign key to doctors table, links patient to their assigned doctor"),
            ],
            sample_data=get_mock_rows("patients")[:3],
        ),
    ])
