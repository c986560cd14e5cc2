"""Route Modules — one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Routes never contain business logic (delegate to services/core)

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""
