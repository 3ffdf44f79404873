"""Configuration — frozen section models, settings resolution and logging."""
