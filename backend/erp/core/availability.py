"""Resource Availability — pure conflict detection over booked slots.

Invariants:
    - A slot without a usable range (no dates) never conflicts
    - Overlap is inclusive (see DateRange.overlaps)
    - Always-available mobile units never conflict and are never locked
    - Excluded session/variant ids are skipped (a booking never conflicts with itself)
    - Results preserve the order of requested resource ids

Design Decisions:
    - Services load candidate slots with a coarse DB filter; exact overlap and
      resource matching happen here, so the rules are testable without a DB
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from erp.core.domain_types import ResourceType
from erp.core.errors import RequestValidationFailed
from erp.core.normalize import sanitize_ids
from erp.core.time_ranges import DateRange, to_iso


@dataclass(frozen=True)
class BookedSlot:
    """A session or variant occupying trainers, units and a room over a range."""
    kind: str  # "session" | "variant"
    id: str
    range: DateRange | None
    trainer_ids: tuple[str, ...] = ()
    unit_ids: tuple[str, ...] = ()
    room_id: str | None = None
    deal_id: str | None = None
    deal_title: str | None = None
    organization_name: str | None = None
    product_code: str | None = None
    product_name: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class RequestedResources:
    trainer_ids: tuple[str, ...] = ()
    unit_ids: tuple[str, ...] = ()
    room_id: str | None = None

    @classmethod
    def build(cls, trainer_ids=None, unit_ids=None, room_id=None):
        rooms = sanitize_ids([room_id]) if room_id else []
        return cls(
            tuple(sanitize_ids(trainer_ids)),
            tuple(sanitize_ids(unit_ids)),
            rooms[0] if rooms else None,
        )

    def is_empty(self) -> bool:
        return not (self.trainer_ids or self.unit_ids or self.room_id)


@dataclass
class ResourceConflict:
    resource_type: ResourceType
    resource_id: str
    conflicts: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "resource_type": self.resource_type.value,
            "resource_id": self.resource_id,
            "conflicts": self.conflicts,
        }


@dataclass
class ResourceLocks:
    trainers: set[str] = field(default_factory=set)
    rooms: set[str] = field(default_factory=set)
    units: set[str] = field(default_factory=set)


def _slot_detail(slot: BookedSlot) -> dict:
    return {
        "kind": slot.kind,
        "session_id" if slot.kind == "session" else "variant_id": slot.id,
        "deal_id": slot.deal_id,
        "deal_title": slot.deal_title,
        "organization_name": slot.organization_name,
        "product_code": slot.product_code,
        "product_name": slot.product_name,
        "inicio": to_iso(slot.range.start) if slot.range else None,
        "fin": to_iso(slot.range.end) if slot.range else None,
    }


def _overlapping(
    span: DateRange,
    slots: Iterable[BookedSlot],
    exclude_session_id: str | None,
    exclude_variant_id: str | None,
) -> list[BookedSlot]:
    result = []
    for slot in slots:
        if slot.kind == "session" and exclude_session_id and slot.id == exclude_session_id:
            continue
        if slot.kind == "variant" and exclude_variant_id and slot.id == exclude_variant_id:
            continue
        if slot.range is None or not slot.range.overlaps(span):
            continue
        result.append(slot)
    return result


def find_conflicts(
    requested: RequestedResources,
    span: DateRange | None,
    slots: Iterable[BookedSlot],
    always_available_units: Iterable[str] = (),
    exclude_session_id: str | None = None,
    exclude_variant_id: str | None = None,
) -> list[ResourceConflict]:
    """Conflict summaries for every requested resource used by an overlapping slot."""
    if span is None or requested.is_empty():
        return []
    free_units = set(always_available_units)
    busy = _overlapping(span, slots, exclude_session_id, exclude_variant_id)
    if not busy:
        return []

    conflicts: list[ResourceConflict] = []
    if requested.room_id:
        hits = [s for s in busy if s.room_id == requested.room_id]
        if hits:
            conflicts.append(ResourceConflict(
                ResourceType.ROOM, requested.room_id,
                [_slot_detail(s) for s in hits],
            ))
    for trainer_id in requested.trainer_ids:
        hits = [s for s in busy if trainer_id in s.trainer_ids]
        if hits:
            conflicts.append(ResourceConflict(
                ResourceType.TRAINER, trainer_id,
                [_slot_detail(s) for s in hits],
            ))
    for unit_id in requested.unit_ids:
        if unit_id in free_units:
            continue
        hits = [s for s in busy if unit_id in s.unit_ids]
        if hits:
            conflicts.append(ResourceConflict(
                ResourceType.MOBILE_UNIT, unit_id,
                [_slot_detail(s) for s in hits],
            ))
    return conflicts


def collect_locks(
    span: DateRange,
    slots: Iterable[BookedSlot],
    always_available_units: Iterable[str] = (),
    exclude_session_id: str | None = None,
    exclude_variant_id: str | None = None,
) -> ResourceLocks:
    free_units = set(always_available_units)
    locks = ResourceLocks()
    for slot in _overlapping(span, slots, exclude_session_id, exclude_variant_id):
        locks.trainers.update(slot.trainer_ids)
        locks.units.update(u for u in slot.unit_ids if u not in free_units)
        if slot.room_id:
            locks.rooms.add(slot.room_id)
    return locks


def schedule_available_trainers(
    trainer_ids: Iterable[str],
    days: list[date],
    overrides: dict[tuple[str, date], bool],
) -> list[str]:
    """Trainers not overridden to unavailable on any of the days (default available)."""
    available = []
    for trainer_id in trainer_ids:
        if all(overrides.get((trainer_id, day), True) for day in days):
            available.append(trainer_id)
    return available


# ─── Trainer availability overrides ──────────────────────────────

def normalize_availability_updates(entries) -> dict[date, bool]:
    """Valid YYYY-MM-DD entries, last one per date wins; all within one year."""
    if not isinstance(entries, list):
        entries = []
    result: dict[date, bool] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        raw = entry.get("date")
        if not isinstance(raw, str) or len(raw.strip()) != 10:
            continue
        try:
            day = date.fromisoformat(raw.strip())
        except ValueError:
            continue
        result[day] = bool(entry.get("available"))
    if not result:
        raise RequestValidationFailed(
            "No se especificaron fechas válidas para actualizar", "updates",
        )
    if len({day.year for day in result}) > 1:
        raise RequestValidationFailed(
            "Todas las fechas deben pertenecer al mismo año", "updates",
        )
    return result


def validate_year(value, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        year = int(str(value).strip())
    except ValueError:
        raise RequestValidationFailed("El parámetro year es inválido", "year")
    if year < 1970 or year > 2100:
        raise RequestValidationFailed("El parámetro year es inválido", "year")
    return year
