"""Domain Types — enums and status sets shared across the ERP.

Invariants:
    - All valid states encoded as Enums — no raw string matching in services
    - str Enums: serialize to JSON without custom encoders
    - Status sets are frozensets (immutable, membership-only)
"""

from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """User roles — maps to users.role column."""
    COMERCIAL = "comercial"
    ADMINISTRACION = "administracion"
    LOGISTICA = "logistica"
    ADMIN = "admin"
    PEOPLE = "people"
    FORMADOR = "formador"


class SessionStatus(str, Enum):
    """Training session states — maps to training_sessions.estado."""
    BORRADOR = "BORRADOR"
    PLANIFICADA = "PLANIFICADA"
    SUSPENDIDA = "SUSPENDIDA"
    CANCELADA = "CANCELADA"
    FINALIZADA = "FINALIZADA"


class ResourceType(str, Enum):
    """Resource kinds reported in conflict summaries."""
    ROOM = "sala"
    TRAINER = "formador"
    MOBILE_UNIT = "unidad_movil"


class Sede(str, Enum):
    """Canonical training venues."""
    ARGANDA = "GEP Arganda"
    SABADELL = "GEP Sabadell"
    IN_COMPANY = "In Company"


# Set by users, never recomputed
MANUAL_STATUSES = frozenset({
    SessionStatus.SUSPENDIDA, SessionStatus.CANCELADA, SessionStatus.FINALIZADA,
})
# May move to and from BORRADOR without planning
DRAFT_TOGGLE_STATUSES = frozenset({
    SessionStatus.SUSPENDIDA, SessionStatus.CANCELADA,
})
BLOCKING_STATUSES = frozenset({
    SessionStatus.BORRADOR, SessionStatus.PLANIFICADA, SessionStatus.SUSPENDIDA,
})

# Room catalogue sedes (note lowercase "company", as stored on rooms)
ROOM_SEDES = ("GEP Arganda", "GEP Sabadell", "In company")
