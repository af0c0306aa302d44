"""Domain layer — field controllers, filter predicates, and rule lists.

This layer depends only on stdlib.
It must never import from services, infrastructure, commands, or config.
"""
