"""GEP ERP Package — training scheduling, trainer resources, deals and material orders.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
