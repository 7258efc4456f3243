from __future__ import annotations

from typing import ContextManager, List, Optional, Protocol

from hovenier.domain.invoice import Invoice, InvoiceStatus
from hovenier.domain.project import Project
from hovenier.domain.quote import Quote

QUOTE_NUMBERS = "offerte"
INVOICE_NUMBERS = "factuur"


class Store(Protocol):
    """
    Persistence collaborator.

    - get_* raises NotFoundError, find_* returns None
    - every failure surfaces as PersistenceError
    - unit_of_work(): all saves inside commit together or not at all
    """

    def get_quote(self, quote_id: str) -> Quote: ...

    def save_quote(self, quote: Quote) -> None: ...

    def list_quotes(self, *, include_archived: bool = False) -> List[Quote]: ...

    def find_quote_by_share_token(self, token: str) -> Optional[Quote]: ...

    def get_project(self, project_id: str) -> Project: ...

    def save_project(self, project: Project) -> None: ...

    def find_project_by_quote(self, quote_id: str) -> Optional[Project]: ...

    def get_invoice(self, invoice_id: str) -> Invoice: ...

    def save_invoice(self, invoice: Invoice) -> None: ...

    def find_invoice_by_project(self, project_id: str) -> Optional[Invoice]: ...

    def list_invoices(self, *, status: Optional[InvoiceStatus] = None) -> List[Invoice]: ...

    def next_number(self, kind: str, year: int) -> int: ...

    def unit_of_work(self) -> ContextManager[None]: ...
