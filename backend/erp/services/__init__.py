"""Services Layer — impure shell around the core: queries, persistence, audit.

Invariants:
    - Services receive an AsyncSession and never commit on behalf of read paths
    - Business decisions delegated to core/ functions
"""
