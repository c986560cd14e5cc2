"""Permissions — role → accessible routes and allowed actions.

Invariants:
    - admin allows every route and every action
    - Unknown roles have no access
    - Route checks ignore a trailing slash
"""

from dataclasses import dataclass, field

from erp.core.domain_types import Role

TRAINER_MANAGEMENT_ROUTE = "/recursos/formadores_bomberos"
PRODUCT_MANAGEMENT_ROUTE = "/recursos/productos"
OPEN_TRAINING_ROUTE = "/recursos/formacion_abierta"

ACTION_BUDGETS_IMPORT = "budgets:import"
ACTION_USERS_MANAGE = "users:manage"


@dataclass(frozen=True)
class RolePermissions:
    routes: tuple[str, ...] = ()
    actions: dict[str, bool] = field(default_factory=dict)
    allow_all: bool = False


_BASE_ROUTES = ("/presupuestos", "/presupuestos/sinplanificar")

ROLE_PERMISSIONS: dict[Role, RolePermissions] = {
    Role.COMERCIAL: RolePermissions(
        routes=_BASE_ROUTES,
        actions={ACTION_BUDGETS_IMPORT: True, ACTION_USERS_MANAGE: False},
    ),
    Role.ADMINISTRACION: RolePermissions(
        routes=_BASE_ROUTES + (
            "/certificados", "/certificados/templates_certificados",
        ),
        actions={ACTION_BUDGETS_IMPORT: True, ACTION_USERS_MANAGE: False},
    ),
    Role.LOGISTICA: RolePermissions(
        routes=_BASE_ROUTES + (
            "/recursos/unidades_moviles", "/recursos/salas",
        ),
        actions={ACTION_BUDGETS_IMPORT: False, ACTION_USERS_MANAGE: False},
    ),
    Role.ADMIN: RolePermissions(allow_all=True),
    Role.PEOPLE: RolePermissions(
        routes=_BASE_ROUTES + (TRAINER_MANAGEMENT_ROUTE,),
        actions={ACTION_BUDGETS_IMPORT: True, ACTION_USERS_MANAGE: False},
    ),
    Role.FORMADOR: RolePermissions(),
}


def parse_role(value) -> Role | None:
    """Case-insensitive role lookup; None when unknown."""
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def is_valid_role(value) -> bool:
    return parse_role(value) is not None


def _normalize_path(path: str) -> str:
    trimmed = path.strip()
    if len(trimmed) > 1 and trimmed.endswith("/"):
        trimmed = trimmed.rstrip("/")
    return trimmed or "/"


def can_access_route(role, path: str) -> bool:
    parsed = parse_role(role.value if isinstance(role, Role) else role)
    if parsed is None:
        return False
    perms = ROLE_PERMISSIONS[parsed]
    if perms.allow_all:
        return True
    return _normalize_path(path) in perms.routes


def can_perform_action(role, action: str) -> bool:
    parsed = parse_role(role.value if isinstance(role, Role) else role)
    if parsed is None:
        return False
    perms = ROLE_PERMISSIONS[parsed]
    if perms.allow_all:
        return True
    return perms.actions.get(action, False)
