"""Exceptions raised by the projection models."""


class ProjectionError(Exception):
    """Base exception for projection model errors."""

    pass


class InvalidScenarioConfig(ProjectionError, ValueError):
    """Raised when a scenario or its parameters are malformed or out of range."""

    pass


class InvalidInput(InvalidScenarioConfig):
    """Raised when a calculator is given inputs it cannot work with."""

    pass
