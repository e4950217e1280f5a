"""Core secret resolution engine."""
