"""
Database Models for the Festival ID Tracker

This module defines the SQLModel database schemas for:
- TrackingEvent: One append-only row per accepted tracking request
- AppOption: Operator-controlled key/value configuration

Design Decisions:
- Single event table, rows are never updated or deleted by the application
- Indexes on festival_id, timestamp and user_hash match the rollup queries
  (per-ID, per-day, per-visitor)
- timestamp is assigned by the store at insert time, never by the client
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import String, DateTime, Text


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Current UTC calendar day."""
    return utc_now().date()


class TrackingEvent(SQLModel, table=True):
    """
    Tracking event log.

    Fields:
    - id: Auto-incrementing primary key (insertion order)
    - festival_id: 6 alphanumeric characters, validated before insert
    - timestamp: Insert time (UTC)
    - user_hash: 32 hex chars, day-rotating visitor hash (no raw PII)
    - ip_address: Best-effort client address (IPv6 max length)

    Indexes:
    - festival_id: per-ID rollups
    - timestamp: daily rollups and day counts
    - user_hash: daily unique visitor queries
    """
    __tablename__ = "festival_id_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    festival_id: str = Field(
        sa_column=Column(String(10), nullable=False, index=True),
        max_length=10
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    user_hash: str = Field(
        sa_column=Column(String(32), nullable=False, index=True)
    )
    ip_address: str = Field(sa_column=Column(String(45), nullable=False))  # IPv6 max length


class AppOption(SQLModel, table=True):
    """
    Key/value option storage.

    Values are JSON encoded so booleans and strings round-trip with their
    type (redirect_enabled, redirect_url).
    """
    __tablename__ = "app_options"

    key: str = Field(
        sa_column=Column(String(64), primary_key=True)
    )
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
