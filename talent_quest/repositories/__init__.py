"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each area (students, performances,
singles, groups, guests, passes, staff accounts). They take the request's
AsyncSession and leave commits to the calling service.
"""
