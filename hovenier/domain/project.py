from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from hovenier.domain.money import D, to_decimal


class ProjectStatus(str, Enum):
    GEPLAND = "gepland"
    IN_UITVOERING = "in_uitvoering"
    AFGEROND = "afgerond"
    NACALCULATIE_COMPLEET = "nacalculatie_compleet"
    GEFACTUREERD = "gefactureerd"


# Lineair: elke status heeft hooguit één opvolger
PROJECT_FLOW = (
    ProjectStatus.GEPLAND,
    ProjectStatus.IN_UITVOERING,
    ProjectStatus.AFGEROND,
    ProjectStatus.NACALCULATIE_COMPLEET,
    ProjectStatus.GEFACTUREERD,
)


@dataclass(frozen=True)
class Project:
    """
    Uitvoering van een geaccepteerde offerte. Verwijst alleen naar de offerte (quote_id),
    kopieert niets van de inhoud.
    actual_hours: gewerkte uren uit de nacalculatie (None zolang die niet compleet is).
    """

    id: str
    quote_id: str
    name: str
    status: ProjectStatus = ProjectStatus.GEPLAND
    actual_hours: Optional[D] = None
    created_at: int = 0
    updated_at: int = 0
    archived_at: Optional[int] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "quote_id": self.quote_id,
            "name": self.name,
            "status": self.status.value,
            "actual_hours": None if self.actual_hours is None else str(self.actual_hours),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "archived_at": self.archived_at,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Project":
        return Project(
            id=str(d["id"]),
            quote_id=str(d["quote_id"]),
            name=str(d.get("name") or ""),
            status=ProjectStatus(d.get("status") or ProjectStatus.GEPLAND.value),
            actual_hours=None if d.get("actual_hours") is None else to_decimal(d["actual_hours"]),
            created_at=int(d.get("created_at") or 0),
            updated_at=int(d.get("updated_at") or 0),
            archived_at=d.get("archived_at"),
        )
