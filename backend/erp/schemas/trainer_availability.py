"""Trainer Availability Schemas — bulk per-day override updates.

Invariants:
    - updates is kept raw: invalid dates are skipped by core, not rejected here
"""

from typing import Any

from pydantic import BaseModel, field_validator

from erp.core.normalize import clean_text


class AvailabilityUpdateRequest(BaseModel):
    trainer_id: str | None = None
    updates: list[Any]

    @field_validator("trainer_id", mode="before")
    @classmethod
    def strip_trainer_id(cls, v):
        return clean_text(v)
