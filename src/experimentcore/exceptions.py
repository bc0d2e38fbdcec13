"""Custom exceptions for the experiment engine."""

from __future__ import annotations


class ExperimentCoreError(Exception):
    """Base exception for experiment engine errors."""

    pass


class ConfigurationError(ExperimentCoreError, ValueError):
    """Invalid input detected before any work is scheduled."""

    pass


class ParameterSpaceError(ConfigurationError):
    """Parameter space has an unusable candidate list."""

    pass


class DecisionError(ConfigurationError):
    """Decision strategy cannot select from the given inputs."""

    pass
