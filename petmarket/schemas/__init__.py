"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Domain records from core/ converted via from_record(), never ORM objects

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
