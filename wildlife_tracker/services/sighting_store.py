"""
Sighting Store - persistence and lifecycle rules for sightings

A sighting is active while now - last_active_at < expiry_window. Every
query that serves clients filters on that condition, so an expired row that
the sweeper has not yet removed is already invisible: it cannot be listed,
fetched or refreshed.

Each operation is a single statement (or a short transaction touching one
row), relying on the database's per-row atomicity. No explicit locks.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from wildlife_tracker.exceptions import (
    SightingNotFound,
    SightingValidationError,
    StoreUnavailable,
)
from wildlife_tracker.models import LocationPoint, Sighting, SightingCreate, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_WINDOW = timedelta(hours=1)

# Smallest step that keeps last_active_at strictly increasing on refresh
_TICK = timedelta(microseconds=1)


def format_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts)


class SightingStore:
    """
    Sighting operations bound to one database session.

    Args:
        db: SQLAlchemy session (one per request or sweep cycle)
        expiry_window: How long a sighting stays active without a refresh
        clock: Returns the current aware UTC time; replaced in tests
    """

    def __init__(
        self,
        db: Session,
        expiry_window: timedelta = DEFAULT_EXPIRY_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        if expiry_window <= timedelta(0):
            raise ValueError("expiry_window must be positive")
        self.db = db
        self.expiry_window = expiry_window
        self._clock = clock

    def _cutoff(self, now: datetime) -> datetime:
        return now - self.expiry_window

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        """Roll back and re-raise connectivity failures as StoreUnavailable."""
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            self.db.rollback()
            logger.error(f"Database unavailable: {e}")
            raise StoreUnavailable("Database unavailable") from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        animal: Any,
        is_baby: Optional[bool] = False,
        location: Union[LocationPoint, Mapping[str, Any], None] = None,
        image_url: Optional[str] = None,
    ) -> Sighting:
        """
        Validate and persist a new sighting.

        Args:
            animal: Species tag, must be one of Animal
            is_baby: Age-class flag (None is treated as False)
            location: LocationPoint or mapping with lat/lng
            image_url: Optional externally hosted photo

        Returns:
            The stored Sighting with id and timestamps assigned

        Raises:
            SightingValidationError: If any field is missing or out of range
        """
        if isinstance(location, LocationPoint):
            location = location.model_dump()
        try:
            payload = SightingCreate.model_validate({
                "animal": animal,
                "is_baby": False if is_baby is None else is_baby,
                "location": location,
                "image_url": image_url,
            })
        except ValidationError as e:
            raise SightingValidationError(format_validation_error(e)) from e

        now = self._clock()
        sighting = Sighting(
            animal=payload.animal.value,
            is_baby=payload.is_baby,
            latitude=payload.location.lat,
            longitude=payload.location.lng,
            image_url=payload.image_url,
            created_at=now,
            last_active_at=now,
        )
        with self._translate_errors():
            self.db.add(sighting)
            self.db.commit()
            self.db.refresh(sighting)

        logger.info(
            f"Created sighting {sighting.id}: {sighting.animal} at "
            f"({sighting.latitude}, {sighting.longitude})"
        )
        return sighting

    def refresh(self, sighting_id: str) -> Sighting:
        """
        Mark an active sighting as "still here".

        Sets last_active_at to now. If the clock has not moved past the stored
        value, the stored value is bumped by one microsecond instead so the
        timestamp always strictly increases.

        Raises:
            SightingNotFound: If the id is unknown, already swept or expired
        """
        now = self._clock()
        cutoff = self._cutoff(now)

        with self._translate_errors():
            updated = (
                self.db.query(Sighting)
                .filter(
                    Sighting.id == sighting_id,
                    Sighting.last_active_at > cutoff,
                    Sighting.last_active_at < now,
                )
                .update({Sighting.last_active_at: now}, synchronize_session=False)
            )

            if not updated:
                current = (
                    self.db.query(Sighting)
                    .filter(Sighting.id == sighting_id, Sighting.last_active_at > cutoff)
                    .first()
                )
                if current is None:
                    self.db.rollback()
                    raise SightingNotFound(sighting_id)
                (
                    self.db.query(Sighting)
                    .filter(Sighting.id == sighting_id)
                    .update(
                        {Sighting.last_active_at: current.last_active_at + _TICK},
                        synchronize_session=False,
                    )
                )

            self.db.commit()
            sighting = self.db.get(Sighting, sighting_id, populate_existing=True)

        if sighting is None:
            # Swept between the update and the read
            raise SightingNotFound(sighting_id)

        logger.info(f"Refreshed sighting {sighting_id}")
        return sighting

    def delete_expired(self) -> int:
        """
        Permanently remove every sighting that is no longer active.

        Returns:
            Number of sightings deleted (0 when nothing newly expired)
        """
        cutoff = self._cutoff(self._clock())
        with self._translate_errors():
            deleted = (
                self.db.query(Sighting)
                .filter(Sighting.last_active_at <= cutoff)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_active(self, limit: Optional[int] = None) -> List[Sighting]:
        """
        Active sightings, newest created_at first.

        Args:
            limit: Maximum number of sightings to return (None for all)
        """
        if limit is not None and limit < 1:
            raise SightingValidationError("limit must be at least 1")

        cutoff = self._cutoff(self._clock())
        with self._translate_errors():
            query = (
                self.db.query(Sighting)
                .filter(Sighting.last_active_at > cutoff)
                .order_by(Sighting.created_at.desc(), Sighting.id)
            )
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def get_active(self, sighting_id: str) -> Sighting:
        """
        Fetch one active sighting.

        Raises:
            SightingNotFound: If the id is unknown or expired
        """
        cutoff = self._cutoff(self._clock())
        with self._translate_errors():
            sighting = (
                self.db.query(Sighting)
                .filter(Sighting.id == sighting_id, Sighting.last_active_at > cutoff)
                .first()
            )
        if sighting is None:
            raise SightingNotFound(sighting_id)
        return sighting

    def count_expired(self) -> int:
        """Number of sightings a sweep would delete right now."""
        cutoff = self._cutoff(self._clock())
        with self._translate_errors():
            return (
                self.db.query(Sighting)
                .filter(Sighting.last_active_at <= cutoff)
                .count()
            )
