"""Configuration infrastructure module."""

from stateflow.infrastructure.config.file_loader import GraphFileLoader
from stateflow.infrastructure.config.settings import StateflowSettings

__all__ = [
    "StateflowSettings",
    "GraphFileLoader",
]
