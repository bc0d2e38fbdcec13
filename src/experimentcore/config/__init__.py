"""Configuration module for the experiment engine."""

from .settings import Settings, get_settings

__all__ = ["get_settings", "Settings"]
