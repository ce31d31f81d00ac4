"""
Persistence of scrape results.

Two sinks implement ``ResultPersistence``:

* ``DatabasePersistence`` keeps the properties / room_types /
  available_dates tables up to date. For every room type the available
  dates inside the scraped window are replaced, so days that are no longer
  bookable disappear.
* ``JsonFilePersistence`` writes each result as a JSON document.

``save_report`` writes the final orchestration report next to them.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hutwatch.exceptions import PersistenceException
from hutwatch.models import AvailableDate, Property, RoomType
from hutwatch.providers.base import ScrapeResult, SubResourceAvailability
from hutwatch.utils.retry import database_retry, file_io_retry
from hutwatch.utils.string_utils import slugify

logger = logging.getLogger(__name__)


class SaveSummary(BaseModel):
    """
    What a persistence sink stored for one result.

    ``sub_resource_ids`` maps each sub-resource key (its external id, or its
    name when it has none) to the stored room type id.
    """

    property_id: Optional[int] = None
    sub_resource_ids: Dict[str, int] = Field(default_factory=dict)
    dates_saved: int = 0
    path: Optional[Path] = None


class ResultPersistence(ABC):
    """Sink for successful scrape results."""

    @abstractmethod
    async def save_scrape_result(
        self,
        result: ScrapeResult,
        target_name: str,
        url: str,
        provider_type: str,
    ) -> SaveSummary:
        """Store one result. Raises on failure."""


class DatabasePersistence(ResultPersistence):
    """
    Stores results in the relational schema.

    Examples:
        >>> persistence = DatabasePersistence(get_async_session_factory())
        >>> summary = await persistence.save_scrape_result(result, "Capanna Margherita", url, "hut-reservation")
        >>> print(f"Saved {summary.dates_saved} dates")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save_scrape_result(
        self,
        result: ScrapeResult,
        target_name: str,
        url: str,
        provider_type: str,
    ) -> SaveSummary:
        try:
            summary = await self._save(result, target_name, url, provider_type)
        except PersistenceException:
            raise
        except Exception as e:
            raise PersistenceException(f"Failed to save results for {target_name}: {e}") from e

        logger.info(
            f"Saved {summary.dates_saved} available dates for {target_name} "
            f"across {len(summary.sub_resource_ids)} room types"
        )
        return summary

    @database_retry(max_attempts=3)
    async def _save(
        self,
        result: ScrapeResult,
        target_name: str,
        url: str,
        provider_type: str,
    ) -> SaveSummary:
        async with self.session_factory() as session:
            async with session.begin():
                prop = await self._get_or_create_property(session, target_name, url, provider_type)
                summary = SaveSummary(property_id=prop.id)

                for sub in result.sub_resources:
                    room_type = await self._get_or_create_room_type(session, prop, sub)
                    summary.sub_resource_ids[sub.external_id or sub.name] = room_type.id
                    summary.dates_saved += await self._replace_available_dates(session, prop, room_type, sub)

        return summary

    async def _get_or_create_property(
        self,
        session: AsyncSession,
        name: str,
        url: str,
        provider_type: str,
    ) -> Property:
        slug = slugify(name)
        if not slug:
            raise PersistenceException(f"Cannot derive a slug from property name {name!r}")

        prop = (await session.execute(select(Property).where(Property.slug == slug))).scalar_one_or_none()
        if prop is None:
            prop = Property(name=name, slug=slug, url=url, booking_system=provider_type, is_active=True)
            session.add(prop)
            await session.flush()
            logger.info(f"Created property: {name} ({slug})")
        else:
            prop.url = url
            prop.booking_system = provider_type
        return prop

    async def _get_or_create_room_type(
        self,
        session: AsyncSession,
        prop: Property,
        sub: SubResourceAvailability,
    ) -> RoomType:
        room_type = None
        if sub.external_id:
            room_type = (
                await session.execute(
                    select(RoomType).where(
                        RoomType.property_id == prop.id, RoomType.external_id == sub.external_id
                    )
                )
            ).scalar_one_or_none()

        if room_type is None:
            # Name match only adopts rows that carry no booking-system id yet
            by_name = select(RoomType).where(RoomType.property_id == prop.id, RoomType.name == sub.name)
            if sub.external_id:
                by_name = by_name.where(RoomType.external_id.is_(None))
            room_type = (await session.execute(by_name.limit(1))).scalars().first()

        if room_type is None:
            room_type = RoomType(
                property_id=prop.id,
                name=sub.name,
                external_id=sub.external_id,
                capacity=sub.capacity,
                is_active=True,
            )
            session.add(room_type)
            await session.flush()
            logger.debug(f"Created room type: {sub.name} ({sub.external_id}) for property {prop.id}")
        else:
            room_type.name = sub.name
            room_type.external_id = sub.external_id or room_type.external_id
            if sub.capacity is not None:
                room_type.capacity = sub.capacity
        return room_type

    async def _replace_available_dates(
        self,
        session: AsyncSession,
        prop: Property,
        room_type: RoomType,
        sub: SubResourceAvailability,
    ) -> int:
        if not sub.dates:
            return 0

        window_start = min(d.day for d in sub.dates)
        window_end = max(d.day for d in sub.dates)
        await session.execute(
            delete(AvailableDate).where(
                AvailableDate.room_type_id == room_type.id,
                AvailableDate.date >= window_start,
                AvailableDate.date <= window_end,
            )
        )

        # One row per day; a later entry for the same day wins
        by_day = {d.day: d for d in sub.available_dates}
        scraped_at = datetime.now()
        session.add_all(
            AvailableDate(
                property_id=prop.id,
                room_type_id=room_type.id,
                date=day,
                can_checkin=entry.can_checkin,
                can_checkout=entry.can_checkout,
                free_places=entry.free_places,
                scraped_at=scraped_at,
            )
            for day, entry in sorted(by_day.items())
        )
        await session.flush()
        return len(by_day)


class JsonFilePersistence(ResultPersistence):
    """Writes each result to ``<directory>/<provider>-<target id>-<timestamp>.json``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    async def save_scrape_result(
        self,
        result: ScrapeResult,
        target_name: str,
        url: str,
        provider_type: str,
    ) -> SaveSummary:
        target_id = result.metadata.target_id if result.metadata.target_id is not None else target_name
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        path = self.directory / f"{slugify(provider_type)}-{slugify(str(target_id))}-{timestamp}.json"

        payload = {
            "target_name": target_name,
            "url": url,
            "provider_type": provider_type,
            **result.model_dump(mode="json"),
            "availability_records": result.availability_records,
        }
        try:
            await asyncio.to_thread(_write_json, path, payload)
        except OSError as e:
            raise PersistenceException(f"Failed to write {path}: {e}") from e

        logger.info(f"Saved results for {target_name} to {path}")
        return SaveSummary(
            dates_saved=result.availability_records,
            path=path,
        )


def save_report(report: BaseModel, directory: Union[str, Path], prefix: str = "scrape-report") -> Path:
    """
    Write an orchestration report to ``<directory>/<prefix>-<timestamp>.json``.

    Args:
        report: OrchestrationReport (any pydantic model works)
        directory: Target directory, created if missing
        prefix: File name prefix

    Returns:
        Path of the written file
    """
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    path = Path(directory) / f"{prefix}-{timestamp}.json"
    try:
        _write_json(path, report.model_dump(mode="json"))
    except OSError as e:
        raise PersistenceException(f"Failed to write report {path}: {e}") from e
    logger.info(f"Report saved to {path}")
    return path


@file_io_retry(max_attempts=3)
def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
