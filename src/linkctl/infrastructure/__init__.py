"""Infrastructure layer — SQLite store and the async mutation gateway.

This layer depends on stdlib and SQLAlchemy.
It must never import from commands or output. Domain schemas resolve record
labels; compiled domain predicates are translated to SQL here.
"""
