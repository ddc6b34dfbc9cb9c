"""
Core Package - Connected Capacity Bundle Engine
connected_capacity/core/__init__.py

Core infrastructure: exceptions, logging. Dependency providers live in
core/dependencies.py and are imported directly by the routers.
"""

from connected_capacity.core.exceptions import (
    BundleEngineException,
    ExpressionException,
    InsufficientAssessmentDataException,
    RuleNotFoundException,
    RuleValidationException,
    SchedulingException,
)
from connected_capacity.core.logging import configure_logging

__all__ = [
    # Exceptions
    "BundleEngineException",
    "ExpressionException",
    "InsufficientAssessmentDataException",
    "RuleNotFoundException",
    "RuleValidationException",
    "SchedulingException",
    # Logging
    "configure_logging",
]
