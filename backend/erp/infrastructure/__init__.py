"""Infrastructure Layer — database session management and logging.

Invariants:
    - Infrastructure never imports from core/ domain logic, only core/errors
"""
