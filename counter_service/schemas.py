from __future__ import annotations

"""
File: counter_service/schemas.py
Purpose: Pydantic models for the counter service request/response contracts.
Key responsibilities:
- Validate order, mode, arrival and comparison payloads.
- Describe order, tick and rush responses.
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional


CustomerType = Literal["gold", "regular", "new"]
OrderStatus = Literal["queued", "in_service", "completed", "abandoned"]
Urgency = Literal["normal", "elevated", "urgent"]


class CreateOrderRequest(BaseModel):
    """Request body for POST /orders."""
    drink: str = Field(min_length=1)
    customer_type: Optional[CustomerType] = None


class ModeRequest(BaseModel):
    """Request body for POST /simulate/mode."""
    mode: Literal["fifo", "smart"]


class ArrivalsRequest(BaseModel):
    """Request body for POST /simulate/arrivals."""
    enabled: bool
    arrival_rate: Optional[float] = Field(default=None, gt=0)


class AutoAdvanceRequest(BaseModel):
    """Request body for POST /simulate/auto."""
    enabled: bool


class CompareRequest(BaseModel):
    """Request body for POST /analytics/compare."""
    arrival_count: int = Field(default=100, ge=1, le=10000)
    duration_minutes: int = Field(default=300, ge=1, le=10000)
    arrival_rate: float = Field(default=1.4, gt=0)
    worker_count: int = Field(default=3, ge=1, le=50)
    seed: Optional[int] = Field(default=None, ge=0)
    include_details: bool = True


class OrderView(BaseModel):
    """Order as returned by the order endpoints."""
    id: int
    drink: str
    drink_name: str
    customer_type: CustomerType
    arrival_minute: int
    prep_minutes: int
    status: OrderStatus
    assigned_worker_id: Optional[int] = None
    priority_score: float
    urgency: Urgency
    people_served_ahead: int
    service_start_minute: Optional[int] = None
    completion_minute: Optional[int] = None
    abandoned_minute: Optional[int] = None
    wait_minutes: Optional[int] = None
    total_minutes: Optional[int] = None
    fairness_violation: bool
    complaint: bool


class TickAssignment(BaseModel):
    order_id: int
    worker_id: int


class TickSummaryView(BaseModel):
    """Response payload from POST /simulate/minute."""
    minute: int
    arrivals: list[int]
    assignments: list[TickAssignment]
    completions: list[int]
    abandonments: list[int]
    fairness_violations: int
    queue_length: int


class RushResponse(BaseModel):
    """Response payload from POST /simulate/rush."""
    count: int
    order_ids: list[int]
