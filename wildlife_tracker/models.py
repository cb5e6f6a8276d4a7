"""
SQLModel Database Models

Unified models using SQLModel (SQLAlchemy + Pydantic) for both:
- Database ORM operations (Sighting table)
- FastAPI request/response validation (SightingCreate, SightingRead)

Table models do not validate on construction, so every write goes through
SightingCreate first (see services/sighting_store.py).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, false
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_sighting_id() -> str:
    return uuid4().hex


class UTCDateTime(TypeDecorator):
    """
    TIMESTAMP WITH TIME ZONE that only accepts and returns aware UTC datetimes.

    SQLite has no timezone support, so values are stored there as naive UTC
    and re-labelled as UTC when loaded.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Naive datetime {value!r} cannot be stored, use UTC")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# ============================================================================
# Enumerations
# ============================================================================

class Animal(str, Enum):
    """Species tags that can be reported"""
    deer = "deer"
    turkey = "turkey"
    cow = "cow"
    sheep = "sheep"
    goat = "goat"
    coyote = "coyote"


# ============================================================================
# Location
# ============================================================================

class LocationPoint(SQLModel):
    """WGS84 coordinate pair"""
    lat: float = Field(ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(ge=-180, le=180, description="Longitude in degrees")


# ============================================================================
# Sighting Models
# ============================================================================

class SightingBase(SQLModel):
    """Base sighting fields - shared between Create and Read"""
    animal: Animal = Field(description="Species tag")
    is_baby: bool = Field(default=False, description="Whether the animal is a juvenile")
    image_url: Optional[str] = Field(None, max_length=2048, description="Externally hosted photo")


class Sighting(SQLModel, table=True):
    """Sighting database model"""
    __tablename__ = "sighting"
    # Mirrors the alembic migration
    __table_args__ = (
        CheckConstraint("latitude BETWEEN -90 AND 90", name="ck_sighting_latitude"),
        CheckConstraint("longitude BETWEEN -180 AND 180", name="ck_sighting_longitude"),
        CheckConstraint("last_active_at >= created_at", name="ck_sighting_last_active"),
    )

    id: str = Field(default_factory=new_sighting_id, primary_key=True, max_length=32)
    animal: str = Field(max_length=20, nullable=False)
    is_baby: bool = Field(default=False, nullable=False, sa_column_kwargs={"server_default": false()})
    latitude: float = Field(nullable=False)
    longitude: float = Field(nullable=False)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
    # Drives both the active query and the expiry sweep
    last_active_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(UTCDateTime(), nullable=False, index=True),
    )


class SightingCreate(SightingBase):
    """Model for creating a new sighting"""
    location: LocationPoint


class SightingRead(SightingBase):
    """Model for reading a sighting (includes ID and timestamps)"""
    id: str
    location: LocationPoint
    created_at: datetime
    last_active_at: datetime

    @classmethod
    def from_sighting(cls, sighting: Sighting) -> "SightingRead":
        return cls(
            id=sighting.id,
            animal=sighting.animal,
            is_baby=sighting.is_baby,
            image_url=sighting.image_url,
            location=LocationPoint(lat=sighting.latitude, lng=sighting.longitude),
            created_at=sighting.created_at,
            last_active_at=sighting.last_active_at,
        )


# ============================================================================
# Response Models
# ============================================================================

class DeleteExpiredResponse(SQLModel):
    """Result of a manual expiry sweep"""
    deleted_count: int = Field(ge=0, description="Number of sightings removed")


class HealthResponse(SQLModel):
    """Service and database status"""
    status: str
    database: str
    version: str
