"""Scheduled political events and the poller that dispatches them.

The poller runs on an APScheduler ``BackgroundScheduler``. It never reaches
for the chat client itself: whatever should happen when an event falls due
is injected as ``dispatcher`` when the scheduler is built.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .store import EVENTS, GUILDS, DocumentStore

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    ELECTION = "election"
    APPOINTMENT = "appointment"


class EventStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PoliticalEvent:
    guild_id: str
    kind: EventKind
    due_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)
    status: EventStatus = EventStatus.PENDING
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "kind": self.kind.value,
            "due_at": self.due_at.isoformat(),
            "payload": dict(self.payload),
            "status": self.status.value,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PoliticalEvent":
        return cls(
            guild_id=doc["guild_id"],
            kind=EventKind(doc["kind"]),
            due_at=datetime.fromisoformat(doc["due_at"]),
            payload=dict(doc.get("payload") or {}),
            status=EventStatus(doc["status"]),
            id=doc.get("_id"),
        )


Dispatcher = Callable[[PoliticalEvent], None]


def log_unhandled_event(event: PoliticalEvent) -> None:
    """Default dispatcher: elections and appointments are not implemented yet."""

    logger.info(
        "No handler for %s event %s in community %s",
        event.kind.value,
        event.id,
        event.guild_id,
    )


class EventScheduler:
    """Polls the store for due events and hands them to ``dispatcher``."""

    JOB_ID = "civitas-event-poll"

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: Dispatcher = log_unhandled_event,
        *,
        poll_seconds: float = 60.0,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._poll_seconds = poll_seconds
        self._scheduler: Optional[BackgroundScheduler] = None

    def schedule(
        self,
        guild_id: str,
        kind: EventKind,
        due_at: datetime,
        payload: Optional[Dict[str, Any]] = None,
    ) -> PoliticalEvent:
        """Persist an event and attach it to the community's guild record."""

        guild = self._store.find_one(GUILDS, {"guild_id": guild_id})
        if guild is None:
            raise ValueError(f"Community {guild_id} is not configured")
        if due_at.tzinfo is None:
            due_at = due_at.replace(tzinfo=timezone.utc)
        event = PoliticalEvent(guild_id=guild_id, kind=kind, due_at=due_at, payload=payload or {})
        event.id = self._store.create(EVENTS, event.to_document())["_id"]
        self._store.find_one_and_update(
            GUILDS,
            {"_id": guild["_id"]},
            {"events": [*guild.get("events", []), event.id]},
        )
        logger.info("Scheduled %s event %s for community %s", kind.value, event.id, guild_id)
        return event

    def poll(self, now: Optional[datetime] = None) -> int:
        """Dispatch every pending event that is due; returns how many ran."""

        now = now or datetime.now(timezone.utc)
        dispatched = 0
        for doc in self._store.find(EVENTS, {"status": EventStatus.PENDING.value}):
            if datetime.fromisoformat(doc["due_at"]) > now:
                continue
            # Claiming flips the status atomically so an overlapping poll skips it.
            claimed = self._store.find_one_and_update(
                EVENTS,
                {"_id": doc["_id"], "status": EventStatus.PENDING.value},
                {"status": EventStatus.PROCESSING.value},
            )
            if claimed is None:
                continue
            event = PoliticalEvent.from_document(claimed)
            try:
                self._dispatcher(event)
            except Exception:
                logger.exception("Failed to dispatch event %s", event.id)
                status = EventStatus.FAILED
            else:
                status = EventStatus.DONE
                dispatched += 1
            self._store.find_one_and_update(EVENTS, {"_id": event.id}, {"status": status.value})
        return dispatched

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self.poll,
            "interval",
            seconds=self._poll_seconds,
            id=self.JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Event scheduler polling every %.0f seconds", self._poll_seconds)

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None


__all__ = [
    "Dispatcher",
    "EventKind",
    "EventScheduler",
    "EventStatus",
    "PoliticalEvent",
    "log_unhandled_event",
]
