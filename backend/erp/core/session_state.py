"""Session State Rules — automatic status, manual transitions, downtime, naming.

Invariants:
    - Manual statuses (SUSPENDIDA, CANCELADA, FINALIZADA) are never recomputed
    - A stored BORRADOR without any date stays BORRADOR
    - Automatic status is BORRADOR or PLANIFICADA, never a manual one
    - resolve_next_status raises InvalidStatusTransitionError; it never returns an invalid state
    - Downtime values are restricted to 1–5 in 0.5 steps

Design Decisions:
    - Sede and pipeline labels normalised here, not in the DB: deals arrive
      from the CRM with free-text addresses and accented pipeline names
"""

import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from erp.core.domain_types import (
    SessionStatus, Sede, MANUAL_STATUSES, DRAFT_TOGGLE_STATUSES,
)
from erp.core.errors import InvalidStatusTransitionError, RequestValidationFailed
from erp.core.normalize import clean_text, to_finite_number

SEDE_ALIASES: dict[str, str] = {
    "c/ moratín, 100, 08206 sabadell, barcelona": Sede.SABADELL.value,
    "c/ primavera, 1, 28500, arganda del rey, madrid": Sede.ARGANDA.value,
    "in company": Sede.IN_COMPANY.value,
    "in company - unidad movil": Sede.IN_COMPANY.value,
    "in company - unidad móvil": Sede.IN_COMPANY.value,
    "in company - unidades_moviles móvil": Sede.IN_COMPANY.value,
}

PIPELINES_PLANNED_WITHOUT_DATES = frozenset({
    "gep services", "preventivos", "pci",
    "formacion empresas", "formacion empresa",
})
PIPELINES_PLANNED_WITHOUT_ROOM = frozenset({"gep services", "preventivos", "pci"})

DOWNTIME_VALUES = frozenset({1, 1.5, 2, 2.5, 3, 3.5, 4, 4.5, 5})

APPLICABLE_PRODUCT_PREFIXES = ("form-", "ces-", "prev-", "pci-")
DEFAULT_SESSION_NAME = "Sesión"


# ─── Label normalisation ─────────────────────────────────────────

def normalize_sede_label(value: str | None) -> str | None:
    text = clean_text(value)
    if text is None:
        return None
    return SEDE_ALIASES.get(text.lower(), text)


def normalize_pipeline_label(value: str | None) -> str | None:
    text = clean_text(value)
    if text is None:
        return None
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.lower()


def parse_status(value: Any) -> SessionStatus | None:
    text = clean_text(value)
    if text is None:
        return None
    try:
        return SessionStatus(text.upper())
    except ValueError:
        return None


def is_manual(status: SessionStatus | str | None) -> bool:
    parsed = parse_status(status) if status is not None else None
    return parsed in MANUAL_STATUSES


# ─── Automatic status ────────────────────────────────────────────

def compute_automatic_status(
    start: datetime | None,
    end: datetime | None,
    room_id: str | None,
    trainer_ids: list[str],
    unit_ids: list[str],
    deal_sede: str | None = None,
    deal_pipeline: str | None = None,
) -> SessionStatus:
    """BORRADOR until resources are complete; PLANIFICADA once dated (or pipeline allows)."""
    pipeline = normalize_pipeline_label(deal_pipeline)
    requires_room = (
        pipeline not in PIPELINES_PLANNED_WITHOUT_ROOM
        and normalize_sede_label(deal_sede) != Sede.IN_COMPANY.value
    )
    if requires_room and not clean_text(room_id):
        return SessionStatus.BORRADOR
    if not trainer_ids or not unit_ids:
        return SessionStatus.BORRADOR
    if (start and end) or pipeline in PIPELINES_PLANNED_WITHOUT_DATES:
        return SessionStatus.PLANIFICADA
    return SessionStatus.BORRADOR


@dataclass(frozen=True)
class SessionFacts:
    """Everything the status rules need to know about a stored session."""
    stored_status: str | None
    start: datetime | None
    end: datetime | None
    room_id: str | None
    trainer_ids: list[str]
    unit_ids: list[str]
    deal_sede: str | None = None
    deal_pipeline: str | None = None


def automatic_status_for(facts: SessionFacts) -> SessionStatus:
    stored = parse_status(facts.stored_status)
    if stored == SessionStatus.BORRADOR and facts.start is None and facts.end is None:
        return SessionStatus.BORRADOR
    return compute_automatic_status(
        facts.start, facts.end, facts.room_id, facts.trainer_ids,
        facts.unit_ids, facts.deal_sede, facts.deal_pipeline,
    )


def resolve_status(facts: SessionFacts) -> SessionStatus:
    """Effective status: manual stored status wins, else automatic."""
    stored = parse_status(facts.stored_status)
    if stored in MANUAL_STATUSES:
        return stored
    return automatic_status_for(facts)


def resolve_next_status(
    current: SessionStatus,
    requested: SessionStatus | None,
    automatic: SessionStatus,
) -> SessionStatus:
    """Status after an update. Raises InvalidStatusTransitionError."""
    if requested is None:
        return current if current in MANUAL_STATUSES else automatic

    leaving_toggle_for_draft = (
        requested == SessionStatus.BORRADOR
        and current in DRAFT_TOGGLE_STATUSES
    )
    if (
        requested not in MANUAL_STATUSES
        and requested != automatic
        and not leaving_toggle_for_draft
    ):
        raise InvalidStatusTransitionError(
            "Estado no editable", current.value, requested.value,
        )

    draft_to_toggle = (
        current == SessionStatus.BORRADOR
        and requested in DRAFT_TOGGLE_STATUSES
    )
    if (
        current not in MANUAL_STATUSES
        and automatic != SessionStatus.PLANIFICADA
        and not draft_to_toggle
    ):
        raise InvalidStatusTransitionError(
            "La sesión debe estar planificada para cambiar el estado",
            current.value, requested.value,
        )
    return requested


# ─── Downtime ────────────────────────────────────────────────────

def parse_downtime(value: Any) -> float | None:
    """Tiempo de parada. None/blank → None; otherwise 1–5 in 0.5 steps."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = to_finite_number(value)
    if number is None:
        raise RequestValidationFailed("Tiempo de parada inválido", "tiempo_parada")
    if number not in DOWNTIME_VALUES:
        raise RequestValidationFailed(
            "Tiempo de parada fuera de rango", "tiempo_parada",
        )
    return number


# ─── Naming and applicability ────────────────────────────────────

def session_base_name(product_name: str | None, product_code: str | None) -> str:
    return clean_text(product_name) or clean_text(product_code) or DEFAULT_SESSION_NAME


def numbered_names(base: str, count: int) -> list[str]:
    return [f"{base} #{index}" for index in range(1, count + 1)]


def is_applicable_product(code: str | None) -> bool:
    text = (clean_text(code) or "").lower()
    return text.startswith(APPLICABLE_PRODUCT_PREFIXES)


def is_prevention_product(name: str | None, code: str | None) -> bool:
    return any(
        (clean_text(value) or "").lower().startswith("prev-")
        for value in (name, code)
    )


def required_session_count(
    name: str | None, code: str | None, quantity: Any,
) -> int:
    """Sessions a deal product should have (0 when not applicable)."""
    if not is_applicable_product(code):
        return 0
    if is_prevention_product(name, code):
        return 1
    number = to_finite_number(quantity)
    if number is None or number <= 0:
        return 0
    return int(number)
