"""Permissions — role → routes and actions.

Tests:
    - admin reaches every route and action
    - Unknown roles have no access
    - Trailing slashes are ignored
    - Role parsing is case-insensitive
"""

from erp.core.domain_types import Role
from erp.core.permissions import (
    ACTION_BUDGETS_IMPORT, ACTION_USERS_MANAGE, TRAINER_MANAGEMENT_ROUTE,
    can_access_route, can_perform_action, parse_role, is_valid_role,
)


def test_admin_allows_everything():
    assert can_access_route("admin", "/cualquier/ruta")
    assert can_perform_action(Role.ADMIN, ACTION_USERS_MANAGE)


def test_unknown_role_has_no_access():
    assert not can_access_route("invitado", "/presupuestos")
    assert not can_perform_action(None, ACTION_BUDGETS_IMPORT)


def test_trailing_slash_is_ignored():
    assert can_access_route("comercial", "/presupuestos/")


def test_people_manages_trainers_but_not_users():
    assert can_access_route("people", TRAINER_MANAGEMENT_ROUTE)
    assert not can_perform_action("people", ACTION_USERS_MANAGE)


def test_logistics_manages_rooms_and_units():
    assert can_access_route("logistica", "/recursos/salas")
    assert can_access_route("logistica", "/recursos/unidades_moviles")
    assert not can_access_route("logistica", TRAINER_MANAGEMENT_ROUTE)
    assert not can_perform_action("logistica", ACTION_BUDGETS_IMPORT)


def test_formador_has_no_routes():
    assert not can_access_route("formador", "/presupuestos")


def test_role_parsing():
    assert parse_role(" Comercial ") == Role.COMERCIAL
    assert parse_role("nope") is None
    assert parse_role(3) is None
    assert is_valid_role("ADMIN")
