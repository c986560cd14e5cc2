"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input)
    - Business rules (status, availability) stay in core/, not in validators

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
