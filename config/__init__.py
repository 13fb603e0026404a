"""Configuration module for the decision record service."""

from .settings import ServerConfig

__all__ = [
    'ServerConfig'
]
