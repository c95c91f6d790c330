"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each aggregate (reference data,
routing definitions, work orders, history). They participate in the caller's
transaction and never commit.
"""
