from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from hovenier.core.errors import NotFoundError, PersistenceError
from hovenier.domain.invoice import Invoice, InvoiceStatus
from hovenier.domain.project import Project
from hovenier.domain.quote import Quote


class MemoryStore:
    """
    In-memory Store (tests, demo). Records zijn immutable dus we bewaren ze direct.
    unit_of_work(): snapshot vooraf, terugzetten bij een exception.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.quotes: Dict[str, Quote] = {}
        self.projects: Dict[str, Project] = {}
        self.invoices: Dict[str, Invoice] = {}
        self.counters: Dict[Tuple[str, int], int] = {}

    # -----------------------------
    # Quotes
    # -----------------------------

    def get_quote(self, quote_id: str) -> Quote:
        with self._lock:
            quote = self.quotes.get(quote_id)
        if quote is None:
            raise NotFoundError(f"Offerte {quote_id} niet gevonden", meta={"quote_id": quote_id})
        return quote

    def save_quote(self, quote: Quote) -> None:
        with self._lock:
            for other in self.quotes.values():
                if other.id != quote.id and other.number == quote.number:
                    raise PersistenceError(
                        f"Offertenummer {quote.number} bestaat al", code="DUPLICATE_NUMBER"
                    )
            self.quotes[quote.id] = quote

    def list_quotes(self, *, include_archived: bool = False) -> List[Quote]:
        with self._lock:
            quotes = list(self.quotes.values())
        return [q for q in quotes if include_archived or not q.is_archived]

    def find_quote_by_share_token(self, token: str) -> Optional[Quote]:
        with self._lock:
            return next((q for q in self.quotes.values() if q.share_token == token), None)

    # -----------------------------
    # Projects
    # -----------------------------

    def get_project(self, project_id: str) -> Project:
        with self._lock:
            project = self.projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} niet gevonden", meta={"project_id": project_id})
        return project

    def save_project(self, project: Project) -> None:
        with self._lock:
            existing = self.find_project_by_quote(project.quote_id)
            if existing is not None and existing.id != project.id:
                raise PersistenceError(
                    "Offerte heeft al een project", code="DUPLICATE_PROJECT", meta={"quote_id": project.quote_id}
                )
            self.projects[project.id] = project

    def find_project_by_quote(self, quote_id: str) -> Optional[Project]:
        with self._lock:
            return next((p for p in self.projects.values() if p.quote_id == quote_id), None)

    # -----------------------------
    # Invoices
    # -----------------------------

    def get_invoice(self, invoice_id: str) -> Invoice:
        with self._lock:
            invoice = self.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Factuur {invoice_id} niet gevonden", meta={"invoice_id": invoice_id})
        return invoice

    def save_invoice(self, invoice: Invoice) -> None:
        with self._lock:
            existing = self.find_invoice_by_project(invoice.project_id)
            if existing is not None and existing.id != invoice.id:
                raise PersistenceError(
                    "Project heeft al een factuur",
                    code="DUPLICATE_INVOICE",
                    meta={"project_id": invoice.project_id},
                )
            self.invoices[invoice.id] = invoice

    def find_invoice_by_project(self, project_id: str) -> Optional[Invoice]:
        with self._lock:
            return next((i for i in self.invoices.values() if i.project_id == project_id), None)

    def list_invoices(self, *, status: Optional[InvoiceStatus] = None) -> List[Invoice]:
        with self._lock:
            invoices = list(self.invoices.values())
        return [i for i in invoices if status is None or i.status is status]

    # -----------------------------
    # Numbering + transactions
    # -----------------------------

    def next_number(self, kind: str, year: int) -> int:
        with self._lock:
            value = self.counters.get((kind, year), 0) + 1
            self.counters[(kind, year)] = value
            return value

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        with self._lock:
            backup = (dict(self.quotes), dict(self.projects), dict(self.invoices), dict(self.counters))
            try:
                yield
            except BaseException:
                self.quotes, self.projects, self.invoices, self.counters = backup
                raise
