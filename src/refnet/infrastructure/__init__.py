"""Infrastructure layer — relationship stores and the SQLite database.

This layer depends on stdlib, pydantic domain models and SQLAlchemy.
It must never import from network, services, commands, or output.
"""
