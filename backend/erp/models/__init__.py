"""ORM Models — SQLAlchemy declarative models for all ERP entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - All instants stored as timezone-aware UTC

Design Decisions:
    - One file per entity (related link tables live beside their owner)
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from erp.models.user import User  # noqa: F401
from erp.models.auth_session import AuthSession  # noqa: F401
from erp.models.trainer import Trainer  # noqa: F401
from erp.models.room import Room  # noqa: F401
from erp.models.mobile_unit import MobileUnit  # noqa: F401
from erp.models.deal import Deal, DealProduct  # noqa: F401
from erp.models.product import Product, Variant, VariantTrainerLink  # noqa: F401
from erp.models.training_session import (  # noqa: F401
    TrainingSession, SessionTrainer, SessionMobileUnit,
)
from erp.models.trainer_availability import TrainerAvailability  # noqa: F401
from erp.models.material_order import MaterialOrder  # noqa: F401
from erp.models.audit_log import AuditLog  # noqa: F401
