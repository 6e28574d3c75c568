"""
Database package.

- base: declarative base and column mixins
- connection: async engine and session management
- models: ORM models for every entity the engine touches
"""

__all__ = []
