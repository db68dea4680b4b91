"""
API Request and Response Schemas

This module defines all Pydantic models for the operator API.
Separated from endpoints to keep concerns separated and enable reuse.
"""

from datetime import date

from pydantic import BaseModel, Field


class DailyStatsEntry(BaseModel):
    """Totals for one calendar day."""
    date: date
    total_calls: int = 0
    unique_ids_count: int = Field(0, description="Distinct festival IDs seen that day")


class DailyStatsResponse(BaseModel):
    """Response model for the daily statistics window."""
    period_start: date
    period_end: date
    days: list[DailyStatsEntry]
    has_next_window: bool = Field(..., description="Whether any event exists after period_end")
    previous_start: date
    next_start: date


class FestivalIdStats(BaseModel):
    """Lifetime totals for one festival ID."""
    festival_id: str
    total_accesses: int
    unique_days_used: int


class PerIdStatsResponse(BaseModel):
    """Response model for the per-ID statistics."""
    total_unique_ids: int
    show_all: bool
    limit: int
    remaining: int = Field(..., description="IDs not included in rows")
    rows: list[FestivalIdStats]


class QuickStatsResponse(BaseModel):
    """Response model for the settings-page summary."""
    total_calls: int
    unique_ids: int
    today_calls: int
    redirect_enabled: bool
    redirect_url: str


class RedirectSettings(BaseModel):
    """Redirect settings, used for both reads and writes."""
    redirect_enabled: bool = False
    redirect_url: str = Field("", description="Absolute http(s) URL, or empty")


class RefreshResponse(BaseModel):
    """Response model for the cache refresh action."""
    status: str = "refreshed"
