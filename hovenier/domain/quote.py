from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from hovenier.core.errors import ValidationError
from hovenier.domain.line_items import LineItem
from hovenier.engine.estimation import EstimationResult, SiteFactors


class QuoteType(str, Enum):
    AANLEG = "aanleg"
    ONDERHOUD = "onderhoud"


class QuoteStatus(str, Enum):
    CONCEPT = "concept"
    VOORCALCULATIE = "voorcalculatie"
    VERZONDEN = "verzonden"
    GEACCEPTEERD = "geaccepteerd"
    AFGEWEZEN = "afgewezen"


class ResponseStatus(str, Enum):
    BEKEKEN = "bekeken"
    GEACCEPTEERD = "geaccepteerd"
    AFGEWEZEN = "afgewezen"


# -----------------------------
# Klant
# -----------------------------


@dataclass(frozen=True)
class Customer:
    name: str
    address: str = ""
    postcode: str = ""
    city: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Customer":
        name = str(d.get("name") or "").strip()
        if not name:
            raise ValidationError("Klantnaam is verplicht", code="EMPTY_CUSTOMER_NAME")
        return Customer(
            name=name,
            address=str(d.get("address") or ""),
            postcode=str(d.get("postcode") or ""),
            city=str(d.get("city") or ""),
            email=d.get("email") or None,
            phone=d.get("phone") or None,
        )


# -----------------------------
# Klantreactie via deellink
# -----------------------------


@dataclass(frozen=True)
class CustomerQuestion:
    text: str
    asked_at: int


@dataclass(frozen=True)
class CustomerResponse:
    status: ResponseStatus
    viewed_at: int
    responded_at: Optional[int] = None
    comment: Optional[str] = None
    signature: Optional[str] = None
    signed_at: Optional[int] = None
    questions: Tuple[CustomerQuestion, ...] = ()

    @property
    def is_decided(self) -> bool:
        return self.status in (ResponseStatus.GEACCEPTEERD, ResponseStatus.AFGEWEZEN)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "viewed_at": self.viewed_at,
            "responded_at": self.responded_at,
            "comment": self.comment,
            "signature": self.signature,
            "signed_at": self.signed_at,
            "questions": [{"text": q.text, "asked_at": q.asked_at} for q in self.questions],
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "CustomerResponse":
        return CustomerResponse(
            status=ResponseStatus(d["status"]),
            viewed_at=int(d["viewed_at"]),
            responded_at=d.get("responded_at"),
            comment=d.get("comment"),
            signature=d.get("signature"),
            signed_at=d.get("signed_at"),
            questions=tuple(
                CustomerQuestion(text=str(q["text"]), asked_at=int(q["asked_at"]))
                for q in d.get("questions") or ()
            ),
        )


# -----------------------------
# Offerte
# -----------------------------


@dataclass(frozen=True)
class Quote:
    """
    Offerte. Immutable: elke wijziging levert een nieuwe Quote op (dataclasses.replace).
    Totalen staan hier niet in; die rekent de pricing engine live uit de regels.
    """

    id: str
    number: str
    type: QuoteType
    customer: Customer
    status: QuoteStatus = QuoteStatus.CONCEPT
    scopes: Tuple[str, ...] = ()
    line_items: Tuple[LineItem, ...] = ()
    scope_data: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    site_factors: SiteFactors = field(default_factory=SiteFactors)
    notes: str = ""
    estimation: Optional[EstimationResult] = None
    customer_response: Optional[CustomerResponse] = None
    share_token: Optional[str] = None
    share_expires_at: Optional[int] = None
    created_at: int = 0
    updated_at: int = 0
    sent_at: Optional[int] = None
    archived_at: Optional[int] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "type": self.type.value,
            "customer": self.customer.to_dict(),
            "status": self.status.value,
            "scopes": list(self.scopes),
            "line_items": [l.to_dict() for l in self.line_items],
            "scope_data": self.scope_data,
            "site_factors": self.site_factors.to_dict(),
            "notes": self.notes,
            "estimation": self.estimation.to_dict() if self.estimation else None,
            "customer_response": self.customer_response.to_dict() if self.customer_response else None,
            "share_token": self.share_token,
            "share_expires_at": self.share_expires_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "sent_at": self.sent_at,
            "archived_at": self.archived_at,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Quote":
        return Quote(
            id=str(d["id"]),
            number=str(d["number"]),
            type=QuoteType(d["type"]),
            customer=Customer.from_dict(d["customer"]),
            status=QuoteStatus(d.get("status") or QuoteStatus.CONCEPT.value),
            scopes=tuple(d.get("scopes") or ()),
            line_items=tuple(LineItem.from_dict(l) for l in d.get("line_items") or ()),
            scope_data=dict(d.get("scope_data") or {}),
            site_factors=SiteFactors.from_dict(d.get("site_factors")),
            notes=str(d.get("notes") or ""),
            estimation=EstimationResult.from_dict(d["estimation"]) if d.get("estimation") else None,
            customer_response=(
                CustomerResponse.from_dict(d["customer_response"]) if d.get("customer_response") else None
            ),
            share_token=d.get("share_token"),
            share_expires_at=d.get("share_expires_at"),
            created_at=int(d.get("created_at") or 0),
            updated_at=int(d.get("updated_at") or 0),
            sent_at=d.get("sent_at"),
            archived_at=d.get("archived_at"),
        )
