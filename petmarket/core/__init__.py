"""Core Layer — domain types, errors, store contracts and pure precondition checks.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions in enforce_listing are pure and deterministic (no IO, no async)

Design Decisions:
    - Functional core separated from imperative shell: the coordinator reads
      through store Protocols and hands plain records to pure checks
"""
