from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from hovenier.core.errors import ValidationError
from hovenier.domain.line_items import LineItem
from hovenier.domain.money import D, HUNDRED, ZERO, qmoney, to_decimal
from hovenier.domain.quote import Customer


class InvoiceStatus(str, Enum):
    CONCEPT = "concept"
    DEFINITIEF = "definitief"
    VERZONDEN = "verzonden"
    BETAALD = "betaald"
    VERVALLEN = "vervallen"


@dataclass(frozen=True)
class CompanyInfo:
    """Bedrijfsgegevens zoals ze op de factuur komen."""

    name: str
    address: str = ""
    postcode: str = ""
    city: str = ""
    kvk: Optional[str] = None
    vat_number: Optional[str] = None
    iban: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "CompanyInfo":
        name = str(d.get("name") or "").strip()
        if not name:
            raise ValidationError("Bedrijfsnaam is verplicht", code="EMPTY_COMPANY_NAME")
        return CompanyInfo(
            name=name,
            **{k: d.get(k) for k in ("address", "postcode", "city") if d.get(k)},
            **{k: d.get(k) or None for k in ("kvk", "vat_number", "iban", "email", "phone")},
        )


@dataclass(frozen=True)
class Correction:
    """Meerwerk (positief) of minderwerk (negatief) op de factuur."""

    description: str
    amount: D

    def to_dict(self) -> Dict[str, str]:
        return {"description": self.description, "amount": str(self.amount)}

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Correction":
        description = str(d.get("description") or "").strip()
        if not description:
            raise ValidationError("Omschrijving correctie is verplicht", code="EMPTY_DESCRIPTION")
        try:
            amount = to_decimal(d.get("amount"))
        except ValueError:
            raise ValidationError(
                "amount is geen geldig getal", code="INVALID_NUMBER", meta={"field": "amount"}
            ) from None
        return Correction(description=description, amount=amount)


@dataclass(frozen=True)
class Invoice:
    """
    Factuur. line_items is een snapshot van de offerte (eigen ids) en blijft
    ongewijzigd zodra de status concept verlaat.
    """

    id: str
    number: str
    project_id: str
    quote_id: str
    customer: Customer
    company: CompanyInfo
    invoice_date: int
    due_date: int
    payment_term_days: int
    vat_percent: D
    status: InvoiceStatus = InvoiceStatus.CONCEPT
    line_items: Tuple[LineItem, ...] = ()
    corrections: Tuple[Correction, ...] = ()
    notes: Optional[str] = None
    sent_at: Optional[int] = None
    paid_at: Optional[int] = None
    updated_at: int = 0

    # -----------------------------
    # Derived totals
    # -----------------------------

    @property
    def _subtotal_full(self) -> D:
        lines = sum((l.line_total for l in self.line_items), ZERO)
        return lines + sum((c.amount for c in self.corrections), ZERO)

    @property
    def subtotal(self) -> D:
        return qmoney(self._subtotal_full)

    @property
    def vat_amount(self) -> D:
        return qmoney(self._subtotal_full * self.vat_percent / HUNDRED)

    @property
    def total_incl_vat(self) -> D:
        return self.subtotal + self.vat_amount

    def is_overdue(self, now: int) -> bool:
        return self.status is InvoiceStatus.VERZONDEN and now > self.due_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "project_id": self.project_id,
            "quote_id": self.quote_id,
            "customer": self.customer.to_dict(),
            "company": self.company.to_dict(),
            "invoice_date": self.invoice_date,
            "due_date": self.due_date,
            "payment_term_days": self.payment_term_days,
            "vat_percent": str(self.vat_percent),
            "status": self.status.value,
            "line_items": [l.to_dict() for l in self.line_items],
            "corrections": [c.to_dict() for c in self.corrections],
            "notes": self.notes,
            "sent_at": self.sent_at,
            "paid_at": self.paid_at,
            "updated_at": self.updated_at,
            "subtotal": str(self.subtotal),
            "vat_amount": str(self.vat_amount),
            "total_incl_vat": str(self.total_incl_vat),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Invoice":
        return Invoice(
            id=str(d["id"]),
            number=str(d["number"]),
            project_id=str(d["project_id"]),
            quote_id=str(d["quote_id"]),
            customer=Customer.from_dict(d["customer"]),
            company=CompanyInfo.from_dict(d["company"]),
            invoice_date=int(d["invoice_date"]),
            due_date=int(d["due_date"]),
            payment_term_days=int(d["payment_term_days"]),
            vat_percent=to_decimal(d["vat_percent"]),
            status=InvoiceStatus(d.get("status") or InvoiceStatus.CONCEPT.value),
            line_items=tuple(LineItem.from_dict(l) for l in d.get("line_items") or ()),
            corrections=tuple(Correction.from_dict(c) for c in d.get("corrections") or ()),
            notes=d.get("notes"),
            sent_at=d.get("sent_at"),
            paid_at=d.get("paid_at"),
            updated_at=int(d.get("updated_at") or 0),
        )
