"""Pydantic v2 response schemas for availability and counter maintenance."""

import uuid

from pydantic import BaseModel


class AvailabilityResponse(BaseModel):
    """Remaining capacity compared with what the caller asked for."""

    available: int
    requested: int
    sufficient: bool


class ReconciliationResponse(BaseModel):
    schedule_id: uuid.UUID
    previous: int
    current: int
    drift: int
