"""Infrastructure Layer — database access, SQL store implementations, logging.

Invariants:
    - Infrastructure implements core Protocols; core never imports from here
    - SQLAlchemy exceptions mapped to core errors at this boundary
"""
