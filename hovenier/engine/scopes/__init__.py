# Importing the modules registers every scope calculator.
from . import aanleg, onderhoud  # noqa: F401
from .base import ScopeCalculator, ScopeContext, get_calculator, register_scope, scope_registry

__all__ = [
    "ScopeCalculator",
    "ScopeContext",
    "get_calculator",
    "register_scope",
    "scope_registry",
]
