# hovenier/api/schemas.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class CustomerIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: constr(strip_whitespace=True, min_length=1)  # type: ignore
    address: str = ""
    postcode: str = ""
    city: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None


class SiteFactorsIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    accessibility: Literal["goed", "beperkt", "slecht"] = "goed"
    backlog: Optional[Literal["laag", "gemiddeld", "hoog"]] = None


class LineIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scope: str
    description: str
    unit: str
    quantity: Decimal
    unit_price: Decimal
    kind: Literal["materiaal", "arbeid", "machine"]
    margin_percent_override: Optional[Decimal] = None


class LinePatch(BaseModel):
    """Alleen meegestuurde velden worden gewijzigd (exclude_unset)."""

    model_config = ConfigDict(extra="forbid")

    scope: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    kind: Optional[Literal["materiaal", "arbeid", "machine"]] = None
    margin_percent_override: Optional[Decimal] = None


class QuoteCreateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["aanleg", "onderhoud"]
    customer: CustomerIn
    scopes: List[str] = []
    scope_data: Dict[str, Dict[str, Any]] = {}
    site_factors: Optional[SiteFactorsIn] = None
    notes: str = ""
    lines: List[LineIn] = []


class QuoteDraftIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scopes: Optional[List[str]] = None
    scope_data: Optional[Dict[str, Dict[str, Any]]] = None
    site_factors: Optional[SiteFactorsIn] = None
    notes: Optional[str] = None


class EstimationIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    team_size: int
    team_members: List[str] = []
    effective_hours_per_day: Optional[Decimal] = None


class RecalculateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    confirm: bool = False


class ProjectAdvanceIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    actual_hours: Optional[Decimal] = Field(default=None, ge=0)


class CompanyIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: constr(strip_whitespace=True, min_length=1)  # type: ignore
    address: str = ""
    postcode: str = ""
    city: str = ""
    kvk: Optional[str] = None
    vat_number: Optional[str] = None
    iban: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class CorrectionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: constr(strip_whitespace=True, min_length=1)  # type: ignore
    amount: Decimal


class InvoiceCreateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_id: str
    company: CompanyIn
    corrections: List[CorrectionIn] = []
    include_variance: bool = True


class CorrectionsIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    corrections: List[CorrectionIn]


class SettleIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    paid_at: Optional[int] = None


class ResponseIn(BaseModel):
    """Klantreactie via de publieke link."""

    model_config = ConfigDict(extra="forbid")

    accepted: bool
    comment: Optional[str] = None
    signature: Optional[str] = None


class QuestionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
