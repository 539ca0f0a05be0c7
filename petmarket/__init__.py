"""Pet Marketplace Package — transaction engine for trading pets in virtual currency.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
