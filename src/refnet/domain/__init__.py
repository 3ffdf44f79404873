"""Domain layer — people, referral relationships, roles and errors.

This layer depends only on stdlib and pydantic.
It must never import from network, services, infrastructure, commands, or config.
"""
