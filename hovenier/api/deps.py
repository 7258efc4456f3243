from __future__ import annotations

from functools import lru_cache

from hovenier.core.settings import settings
from hovenier.db import SessionLocal
from hovenier.repositories import SqlStore
from hovenier.workflow.orchestrator import WorkflowOrchestrator


@lru_cache
def _default_orchestrator() -> WorkflowOrchestrator:
    return WorkflowOrchestrator(SqlStore(SessionLocal), settings)


def get_orchestrator() -> WorkflowOrchestrator:
    """FastAPI dependency. Tests overriden dit via app.dependency_overrides."""
    return _default_orchestrator()
