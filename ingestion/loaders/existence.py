"""
Chunked lookup of existing rows by natural key
"""

import enum
from typing import Dict, Iterable, Iterator, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.ride import Ride
from models.station import Station
import logging

logger = logging.getLogger(__name__)

# SQLite rejects statements with more than 999 bound parameters
PARAM_SAFE_CHUNK = 900


class EntityType(str, enum.Enum):
    STATION = "station"
    RIDE = "ride"


_ENTITY_KEYS = {
    EntityType.STATION: (Station, Station.station_id),
    EntityType.RIDE: (Ride, Ride.ride_id),
}


def chunked(keys: List[str], size: int = PARAM_SAFE_CHUNK) -> Iterator[List[str]]:
    for i in range(0, len(keys), size):
        yield keys[i:i + size]


async def fetch_existing(
    session: AsyncSession,
    entity_type: EntityType,
    keys: Iterable[str]
) -> Dict[str, object]:
    """
    Load the rows whose natural key is in ``keys``.

    Keys are de-duplicated (first-seen order kept) and queried in chunks of
    PARAM_SAFE_CHUNK, one SELECT per chunk.

    Returns:
        Mapping of key to ORM instance for every key that already exists
    """
    entity_type = EntityType(entity_type)
    model, key_column = _ENTITY_KEYS[entity_type]
    unique_keys = list(dict.fromkeys(keys))
    existing: Dict[str, object] = {}

    if not unique_keys:
        return existing

    for chunk in chunked(unique_keys):
        result = await session.execute(select(model).where(key_column.in_(chunk)))
        for instance in result.scalars().all():
            existing[getattr(instance, key_column.key)] = instance

    logger.debug(
        f"Existence check for {len(unique_keys)} {entity_type.value} keys: "
        f"{len(existing)} found"
    )
    return existing
