from __future__ import annotations

import json
import logging
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tacitus.db.models import Location
from tacitus.errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_DEG = 0.1

_MIN_ROW_ID = -(2**63)
_MAX_ROW_ID = 2**63 - 1


class LocationSummary(BaseModel):
    id: int
    latitude: float
    longitude: float
    location_name: str
    created_at: datetime | None = None


class LocationRecord(LocationSummary):
    articles: list[str]


def encode_articles(articles: list[str]) -> str:
    """Serialize article URLs for the ``articles`` TEXT column."""
    return json.dumps(list(articles))


def decode_articles(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


def _to_record(row: Location) -> LocationRecord:
    return LocationRecord(
        id=row.id,
        latitude=row.latitude,
        longitude=row.longitude,
        location_name=row.location_name,
        created_at=row.created_at,
        articles=decode_articles(row.articles),
    )


class LocationStore:
    """Append-only access to the ``locations`` table.

    Every SQLAlchemy failure is re-raised as :class:`PersistenceError` so
    callers never depend on driver-specific exceptions.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(
        self,
        latitude: float,
        longitude: float,
        name: str,
        articles: list[str],
    ) -> LocationRecord:
        row = Location(
            latitude=latitude,
            longitude=longitude,
            location_name=name,
            articles=encode_articles(articles),
        )
        try:
            self._session.add(row)
            await self._session.flush()
            row_id = row.id
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Failed to store location %r: %s", name, exc)
            raise PersistenceError(f"Could not store location {name!r}") from exc

        logger.info("Stored location %r with id=%d", name, row_id)

        # The row is committed from here on; a failed reload only loses created_at.
        try:
            await self._session.refresh(row)
        except SQLAlchemyError as exc:
            logger.warning("Stored location %r but could not reload it: %s", name, exc)
            return LocationRecord(
                id=row_id,
                latitude=latitude,
                longitude=longitude,
                location_name=name,
                articles=list(articles),
            )
        return _to_record(row)

    async def list_all(self) -> list[LocationSummary]:
        """All locations without articles, newest first."""
        stmt = select(
            Location.id,
            Location.latitude,
            Location.longitude,
            Location.location_name,
            Location.created_at,
        ).order_by(Location.created_at.desc(), Location.id.desc())
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not list locations") from exc

        return [
            LocationSummary(
                id=r.id,
                latitude=r.latitude,
                longitude=r.longitude,
                location_name=r.location_name,
                created_at=r.created_at,
            )
            for r in result.all()
        ]

    async def get_by_id(self, location_id: int) -> LocationRecord | None:
        # Ids outside SQLite's signed 64-bit INTEGER range can never be stored.
        if not _MIN_ROW_ID <= location_id <= _MAX_ROW_ID:
            return None
        try:
            row = await self._session.get(Location, location_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load location {location_id}") from exc
        return _to_record(row) if row is not None else None

    async def find_nearest(
        self,
        latitude: float,
        longitude: float,
        tolerance: float = DEFAULT_TOLERANCE_DEG,
    ) -> LocationRecord | None:
        """Closest record inside the axis-aligned tolerance box, or None.

        Both deltas must be strictly below *tolerance*.  Candidates are ranked
        by ``|dlat| + |dlng|``; equal scores resolve to the lowest id.
        """
        dlat = func.abs(Location.latitude - latitude)
        dlng = func.abs(Location.longitude - longitude)
        stmt = (
            select(Location)
            .where(dlat < tolerance)
            .where(dlng < tolerance)
            .order_by(dlat + dlng, Location.id)
            .limit(1)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("Nearest-location lookup failed") from exc

        row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None
