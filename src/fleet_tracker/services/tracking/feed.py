"""Trip change feed backed by Supabase realtime."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from supabase import acreate_client

from ...config import settings
from ...models.domain import Trip

logger = logging.getLogger(__name__)


class TripChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(slots=True, frozen=True)
class TripChangeEvent:
    kind: TripChangeKind
    trip: Trip


EventSink = Callable[[TripChangeEvent], None]


def parse_change_payload(payload: dict[str, Any]) -> Optional[TripChangeEvent]:
    """Turn a postgres_changes payload into a typed event, or None if unusable.

    Accepts both the realtime server shape (``data.type`` / ``data.record``)
    and the client-library shape (``eventType`` / ``new``).
    """
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    kind_value = data.get("type") or data.get("eventType")
    try:
        kind = TripChangeKind(str(kind_value).upper())
    except ValueError:
        logger.warning(f"Ignoring trip change with unknown event type: {kind_value}")
        return None

    record = data.get("record") or data.get("new")
    if kind is TripChangeKind.DELETE or not record:
        record = record or data.get("old_record") or data.get("old")
    if not isinstance(record, dict) or "id" not in record:
        logger.warning(f"Ignoring {kind.value} trip change without a record")
        return None

    try:
        return TripChangeEvent(kind=kind, trip=Trip.from_record(record))
    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Ignoring malformed trip change {record.get('id')}: {e}")
        return None


class RealtimeTripFeed:
    """Listens to trip table changes on a background event loop thread."""

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        table: str | None = None,
        schema: str | None = None,
        channel_name: str = "backend_trips",
    ) -> None:
        self.url = url or settings.supabase_url
        self.key = key or settings.supabase_key
        if not self.url or not self.key:
            raise ValueError("Supabase realtime requires a URL and key.")
        self.table = table or settings.trips_table
        self.schema = schema or settings.realtime_schema
        self.channel_name = channel_name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed: Optional[asyncio.Event] = None
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, sink: EventSink) -> None:
        if self._thread is not None:
            raise RuntimeError("Trip feed is already subscribed")
        self._thread = threading.Thread(target=self._run, args=(sink,), name="trip-feed", daemon=True)
        self._thread.start()

    def close(self, timeout: float = 5.0) -> None:
        if self._loop is not None and self._closed is not None:
            self._loop.call_soon_threadsafe(self._closed.set)
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self, sink: EventSink) -> None:
        self._loop = asyncio.new_event_loop()
        self._closed = asyncio.Event()
        try:
            self._loop.run_until_complete(self._listen(sink))
        except Exception:
            logger.exception("Trip change feed stopped unexpectedly")
        finally:
            self._loop.close()

    async def _listen(self, sink: EventSink) -> None:
        client = await acreate_client(self.url, self.key)

        def _on_change(payload: dict[str, Any]) -> None:
            event = parse_change_payload(payload)
            if event is not None:
                logger.info(f"Trip change: {event.kind.value} {event.trip.id}")
                sink(event)

        def _on_status(status: Any, error: Optional[Exception] = None) -> None:
            if error is not None:
                logger.error(f"Trips subscription error: {error}")
            else:
                logger.info(f"Trips subscription: {status}")

        channel = client.channel(self.channel_name)
        channel.on_postgres_changes("*", schema=self.schema, table=self.table, callback=_on_change)
        await channel.subscribe(_on_status)
        await self._closed.wait()
        await client.remove_all_channels()
