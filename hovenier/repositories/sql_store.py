from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hovenier.core.errors import NotFoundError, PersistenceError
from hovenier.core.logging_config import logger
from hovenier.db import Base
from hovenier.domain.invoice import Invoice, InvoiceStatus
from hovenier.domain.project import Project
from hovenier.domain.quote import Quote
from hovenier.models import InvoiceRecord, NumberCounter, ProjectRecord, QuoteRecord


class SqlStore:
    """
    SQLAlchemy Store. Eén sessie per operatie, of één gedeelde sessie binnen unit_of_work()
    (per thread). Domeinrecords gaan als JSON payload in de tabel; status/ids staan
    ernaast als kolommen voor lookups en constraints.
    """

    def __init__(self, session_factory: sessionmaker, *, create_tables: bool = False):
        self._session_factory = session_factory
        self._local = threading.local()
        if create_tables:
            Base.metadata.create_all(bind=session_factory.kw["bind"])

    @contextmanager
    def _session(self) -> Iterator[Session]:
        shared: Optional[Session] = getattr(self._local, "session", None)
        if shared is not None:
            yield shared
            return

        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("store_error", error=str(e))
            raise PersistenceError("Database-fout", meta={"error": str(e)}) from e
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            # genest: de buitenste unit of work commit
            yield
            return

        db = self._session_factory()
        self._local.session = db
        try:
            yield
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("store_transaction_failed", error=str(e))
            raise PersistenceError("Transactie mislukt", meta={"error": str(e)}) from e
        except BaseException:
            db.rollback()
            raise
        finally:
            self._local.session = None
            db.close()

    def _flush(self, db: Session) -> None:
        try:
            db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("Opslaan mislukt", meta={"error": str(e)}) from e

    # -----------------------------
    # Quotes
    # -----------------------------

    def get_quote(self, quote_id: str) -> Quote:
        with self._session() as db:
            rec = db.get(QuoteRecord, quote_id)
            if rec is None:
                raise NotFoundError(f"Offerte {quote_id} niet gevonden", meta={"quote_id": quote_id})
            return Quote.from_dict(rec.payload)

    def save_quote(self, quote: Quote) -> None:
        with self._session() as db:
            rec = db.get(QuoteRecord, quote.id) or QuoteRecord(id=quote.id)
            rec.number = quote.number
            rec.status = quote.status.value
            rec.share_token = quote.share_token
            rec.archived_at = quote.archived_at
            rec.updated_at = quote.updated_at
            rec.payload = quote.to_dict()
            db.add(rec)
            self._flush(db)

    def list_quotes(self, *, include_archived: bool = False) -> List[Quote]:
        with self._session() as db:
            stmt = select(QuoteRecord).order_by(QuoteRecord.number)
            if not include_archived:
                stmt = stmt.where(QuoteRecord.archived_at.is_(None))
            return [Quote.from_dict(r.payload) for r in db.scalars(stmt)]

    def find_quote_by_share_token(self, token: str) -> Optional[Quote]:
        with self._session() as db:
            rec = db.scalars(select(QuoteRecord).where(QuoteRecord.share_token == token)).first()
            return Quote.from_dict(rec.payload) if rec else None

    # -----------------------------
    # Projects
    # -----------------------------

    def get_project(self, project_id: str) -> Project:
        with self._session() as db:
            rec = db.get(ProjectRecord, project_id)
            if rec is None:
                raise NotFoundError(f"Project {project_id} niet gevonden", meta={"project_id": project_id})
            return Project.from_dict(rec.payload)

    def save_project(self, project: Project) -> None:
        with self._session() as db:
            rec = db.get(ProjectRecord, project.id) or ProjectRecord(id=project.id)
            rec.quote_id = project.quote_id
            rec.status = project.status.value
            rec.archived_at = project.archived_at
            rec.updated_at = project.updated_at
            rec.payload = project.to_dict()
            db.add(rec)
            self._flush(db)

    def find_project_by_quote(self, quote_id: str) -> Optional[Project]:
        with self._session() as db:
            rec = db.scalars(select(ProjectRecord).where(ProjectRecord.quote_id == quote_id)).first()
            return Project.from_dict(rec.payload) if rec else None

    # -----------------------------
    # Invoices
    # -----------------------------

    def get_invoice(self, invoice_id: str) -> Invoice:
        with self._session() as db:
            rec = db.get(InvoiceRecord, invoice_id)
            if rec is None:
                raise NotFoundError(f"Factuur {invoice_id} niet gevonden", meta={"invoice_id": invoice_id})
            return Invoice.from_dict(rec.payload)

    def save_invoice(self, invoice: Invoice) -> None:
        with self._session() as db:
            rec = db.get(InvoiceRecord, invoice.id) or InvoiceRecord(id=invoice.id)
            rec.number = invoice.number
            rec.project_id = invoice.project_id
            rec.status = invoice.status.value
            rec.due_date = invoice.due_date
            rec.updated_at = invoice.updated_at
            rec.payload = invoice.to_dict()
            db.add(rec)
            self._flush(db)

    def find_invoice_by_project(self, project_id: str) -> Optional[Invoice]:
        with self._session() as db:
            rec = db.scalars(select(InvoiceRecord).where(InvoiceRecord.project_id == project_id)).first()
            return Invoice.from_dict(rec.payload) if rec else None

    def list_invoices(self, *, status: Optional[InvoiceStatus] = None) -> List[Invoice]:
        with self._session() as db:
            stmt = select(InvoiceRecord).order_by(InvoiceRecord.number)
            if status is not None:
                stmt = stmt.where(InvoiceRecord.status == status.value)
            return [Invoice.from_dict(r.payload) for r in db.scalars(stmt)]

    # -----------------------------
    # Numbering
    # -----------------------------

    def next_number(self, kind: str, year: int) -> int:
        with self._session() as db:
            counter = db.get(NumberCounter, (kind, year), with_for_update=True)
            if counter is None:
                counter = NumberCounter(kind=kind, year=year, value=0)
                db.add(counter)
            counter.value += 1
            self._flush(db)
            return counter.value
