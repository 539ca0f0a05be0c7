"""Services Layer — orchestration of store operations into atomic units of work.

Invariants:
    - Services depend on core Protocols, never on concrete SQL stores
"""
