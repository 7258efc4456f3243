from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import uuid4

from hovenier.core.clock import days_to_ms, now_ms, year_of
from hovenier.core.errors import (
    ConfirmationRequired,
    HovenierError,
    PreconditionError,
    SettlementError,
    ValidationError,
)
from hovenier.core.logging_config import logger
from hovenier.core.settings import Settings
from hovenier.domain import line_items as li
from hovenier.domain.invoice import CompanyInfo, Correction, Invoice, InvoiceStatus
from hovenier.domain.money import D, ZERO, to_decimal
from hovenier.domain.project import PROJECT_FLOW, Project, ProjectStatus
from hovenier.domain.quote import Customer, Quote, QuoteType
from hovenier.engine.estimation import EstimationResult, SiteFactors, TeamConfig, estimate
from hovenier.engine.line_generation import generate_lines
from hovenier.engine.norms import NormTable, ProductCatalog, default_catalog, default_norm_table
from hovenier.engine.pricing import PricingSettings, QuoteTotals, compute_totals
from hovenier.repositories.base import INVOICE_NUMBERS, QUOTE_NUMBERS, Store
from hovenier.workflow import invoice_lifecycle as inv
from hovenier.workflow import quote_lifecycle as ql
from hovenier.workflow.autosave import AutoSaveCoordinator, Scheduler
from hovenier.workflow.share_tokens import ShareTokenService
from hovenier.workflow.steps import EntityType, StepView, workflow_position


def _hours(value: Any) -> D:
    try:
        hours = to_decimal(value)
    except ValueError:
        raise ValidationError(
            "actual_hours is geen geldig getal", code="INVALID_NUMBER", meta={"field": "actual_hours"}
        ) from None
    if hours < ZERO:
        raise ValidationError(
            "Gewerkte uren mogen niet negatief zijn",
            code="NEGATIVE_AMOUNT",
            meta={"field": "actual_hours", "value": str(hours)},
        )
    return hours


class WorkflowOrchestrator:
    """
    Verbindt offerte -> voorcalculatie -> project -> factuur.

    De state machines zelf zijn pure functies (quote_lifecycle / invoice_lifecycle);
    hier laden we records uit de store, passen een transitie toe en slaan op.
    Cross-entity effecten (project bij akkoord, archiveren bij betaling) gaan in één unit of work.
    """

    def __init__(
        self,
        store: Store,
        settings: Settings,
        *,
        norms: Optional[NormTable] = None,
        catalog: Optional[ProductCatalog] = None,
        share_tokens: Optional[ShareTokenService] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.settings = settings
        self.pricing = PricingSettings.from_settings(settings)
        self.norms = norms or default_norm_table(settings.NORM_TABLE_PATH)
        self.catalog = catalog or default_catalog()
        self.share_tokens = share_tokens or ShareTokenService(settings.SHARE_TOKEN_SECRET)
        self.clock = clock

    # -----------------------------
    # Helpers
    # -----------------------------

    def _number(self, kind: str, prefix: str, now: int) -> str:
        year = year_of(now)
        n = self.store.next_number(kind, year)
        return f"{prefix}{year}-{n:03d}"

    def _log_quote(self, event: str, before: Quote, after: Quote) -> None:
        logger.info(
            event,
            quote_id=after.id,
            number=after.number,
            from_status=before.status.value,
            to_status=after.status.value,
        )

    def totals(self, quote_id: str) -> QuoteTotals:
        return compute_totals(self.store.get_quote(quote_id).line_items, self.pricing)

    # -----------------------------
    # Offerte aanmaken / bewerken
    # -----------------------------

    def create_quote(
        self,
        quote_type: QuoteType,
        customer: Customer,
        *,
        scopes: Iterable[str] = (),
        scope_data: Optional[Mapping[str, Mapping[str, Any]]] = None,
        site_factors: Optional[SiteFactors] = None,
        notes: str = "",
        lines: Iterable[Mapping[str, Any]] = (),
    ) -> Quote:
        now = self.clock()
        items: Tuple[li.LineItem, ...] = ()
        for draft in lines:
            items = li.add_line(items, draft)

        with self.store.unit_of_work():
            quote = Quote(
                id=uuid4().hex,
                number=self._number(QUOTE_NUMBERS, self.settings.QUOTE_NUMBER_PREFIX, now),
                type=QuoteType(quote_type),
                customer=customer,
                scopes=tuple(dict.fromkeys(scopes)),
                line_items=items,
                scope_data={k: dict(v) for k, v in (scope_data or {}).items()},
                site_factors=site_factors or SiteFactors(),
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            self.store.save_quote(quote)

        logger.info("quote_created", quote_id=quote.id, number=quote.number, type=quote.type.value)
        return quote

    def add_line(self, quote_id: str, draft: Mapping[str, Any]) -> Quote:
        quote = self.store.get_quote(quote_id)
        updated = ql.with_lines(quote, li.add_line(quote.line_items, draft), self.clock())
        self.store.save_quote(updated)
        return updated

    def update_line(self, quote_id: str, line_id: str, patch: Mapping[str, Any]) -> Quote:
        quote = self.store.get_quote(quote_id)
        updated = ql.with_lines(quote, li.update_line(quote.line_items, line_id, patch), self.clock())
        self.store.save_quote(updated)
        return updated

    def remove_line(self, quote_id: str, line_id: str) -> Quote:
        quote = self.store.get_quote(quote_id)
        updated = ql.with_lines(quote, li.remove_line(quote.line_items, line_id), self.clock())
        self.store.save_quote(updated)
        return updated

    def edit_lines(
        self,
        quote_id: str,
        *,
        add: Iterable[Mapping[str, Any]] = (),
        update: Optional[Mapping[str, Mapping[str, Any]]] = None,
        remove: Iterable[str] = (),
    ) -> Quote:
        """Meerdere regelwijzigingen in één keer; faalt er één, dan wordt niets opgeslagen."""
        quote = self.store.get_quote(quote_id)
        items = quote.line_items
        for line_id in remove:
            items = li.remove_line(items, line_id)
        for line_id, patch in (update or {}).items():
            items = li.update_line(items, line_id, patch)
        for draft in add:
            items = li.add_line(items, draft)
        updated = ql.with_lines(quote, items, self.clock())
        self.store.save_quote(updated)
        return updated

    def update_draft(self, quote_id: str, **changes: Any) -> Quote:
        quote = self.store.get_quote(quote_id)
        updated = ql.update_draft(quote, self.clock(), **changes)
        self.store.save_quote(updated)
        return updated

    def scope_data_autosave(self, quote_id: str, *, scheduler: Optional[Scheduler] = None) -> AutoSaveCoordinator:
        """Auto-save voor de wizard: bewaart scope_data van deze offerte na de debounce."""
        quote = self.store.get_quote(quote_id)
        return AutoSaveCoordinator(
            lambda draft: self.update_draft(quote_id, scope_data=draft),
            debounce_ms=self.settings.AUTOSAVE_DEBOUNCE_MS,
            scheduler=scheduler,
            clock=self.clock,
            initial=quote.scope_data,
            name=f"scope_data:{quote.number}",
        )

    def duplicate_quote(self, quote_id: str) -> Quote:
        source = self.store.get_quote(quote_id)
        now = self.clock()
        with self.store.unit_of_work():
            number = self._number(QUOTE_NUMBERS, self.settings.QUOTE_NUMBER_PREFIX, now)
            copy = ql.duplicate(source, uuid4().hex, number, now)
            self.store.save_quote(copy)
        logger.info("quote_duplicated", quote_id=copy.id, source_id=source.id, number=copy.number)
        return copy

    # -----------------------------
    # Voorcalculatie
    # -----------------------------

    def run_estimation(self, quote: Quote, team: TeamConfig) -> EstimationResult:
        return estimate(
            quote.scopes,
            quote.scope_data,
            quote.site_factors,
            team,
            self.norms,
            labor_lines=quote.line_items,
        )

    def save_estimation(
        self,
        quote_id: str,
        team_size: int,
        *,
        team_members: Iterable[str] = (),
        effective_hours_per_day: Any = None,
    ) -> Quote:
        quote = self.store.get_quote(quote_id)
        team = TeamConfig(
            size=int(team_size),
            members=frozenset(team_members),
            effective_hours_per_day=(
                self.settings.EFFECTIVE_HOURS_PER_DAY
                if effective_hours_per_day is None
                else effective_hours_per_day
            ),
        )
        result = self.run_estimation(quote, team)
        updated = ql.attach_estimation(quote, result, self.clock())
        self.store.save_quote(updated)
        logger.info(
            "estimation_saved",
            quote_id=quote.id,
            norm_hours_total=str(result.norm_hours_total),
            estimated_days=result.estimated_days,
        )
        return updated

    def complete_estimation(self, quote_id: str, autosave: Optional[AutoSaveCoordinator] = None) -> Quote:
        # openstaande wizard-wijzigingen eerst wegschrijven
        if autosave is not None:
            autosave.save_now()
        quote = self.store.get_quote(quote_id)
        updated = ql.complete_estimation(quote, self.clock())
        self.store.save_quote(updated)
        self._log_quote("quote_transition", quote, updated)
        return updated

    def recalculate(self, quote_id: str, *, confirm: bool = False) -> Quote:
        """
        Herbereken alle regels uit scope_data. Destructief: handmatige regels en
        marge-overrides gaan verloren, daarom alleen met confirm=True.
        """
        quote = self.store.get_quote(quote_id)
        ql.ensure_editable(quote)
        if not confirm:
            raise ConfirmationRequired(
                "Herberekenen vervangt alle offerteregels; bevestiging vereist",
                meta={
                    "quote_id": quote.id,
                    "lines_replaced": len(quote.line_items),
                    "margin_overrides_lost": sum(
                        1 for l in quote.line_items if l.margin_percent_override is not None
                    ),
                },
            )

        now = self.clock()
        lines = generate_lines(
            quote.scopes,
            quote.scope_data,
            quote.site_factors,
            self.norms,
            self.catalog,
            self.pricing.default_hourly_rate,
        )
        updated = ql.with_lines(quote, lines, now)
        if quote.estimation is not None:
            team = TeamConfig(
                size=quote.estimation.team_size,
                members=quote.estimation.team_members,
                effective_hours_per_day=quote.estimation.effective_hours_per_day,
            )
            updated = ql.attach_estimation(updated, self.run_estimation(updated, team), now)

        self.store.save_quote(updated)
        logger.info("quote_recalculated", quote_id=quote.id, lines=len(lines))
        return updated

    # -----------------------------
    # Verzenden + klantreactie
    # -----------------------------

    def send_quote(self, quote_id: str) -> Quote:
        quote = self.store.get_quote(quote_id)
        now = self.clock()
        sent = ql.send(quote, now)
        shared = ql.share(
            sent,
            self.share_tokens.make(quote.id),
            now + days_to_ms(self.settings.SHARE_TOKEN_TTL_DAYS),
            now,
        )
        self.store.save_quote(shared)
        self._log_quote("quote_transition", quote, shared)
        return shared

    def _spawn_project(self, quote: Quote, now: int) -> Project:
        existing = self.store.find_project_by_quote(quote.id)
        if existing is not None:
            return existing
        project = Project(
            id=uuid4().hex,
            quote_id=quote.id,
            name=f"{quote.customer.name} ({quote.number})",
            created_at=now,
            updated_at=now,
        )
        self.store.save_project(project)
        logger.info("project_created", project_id=project.id, quote_id=quote.id)
        return project

    def accept_quote(self, quote_id: str) -> Tuple[Quote, Project]:
        quote = self.store.get_quote(quote_id)
        now = self.clock()
        accepted, event = ql.accept(quote, now)
        with self.store.unit_of_work():
            self.store.save_quote(accepted)
            project = self._spawn_project(accepted, event.accepted_at)
        self._log_quote("quote_transition", quote, accepted)
        return accepted, project

    def move_to_planning(self, quote_id: str, autosave: Optional[AutoSaveCoordinator] = None) -> Project:
        """Naar de planningstap: eerst openstaande wijzigingen flushen, daarna het project van de offerte."""
        if autosave is not None:
            autosave.save_now()
        quote = self.store.get_quote(quote_id)
        project = self.store.find_project_by_quote(quote.id)
        if project is None:
            raise PreconditionError(
                "Offerte is nog niet geaccepteerd",
                code="QUOTE_NOT_ACCEPTED",
                meta={"quote_id": quote.id, "status": quote.status.value},
            )
        return project

    def reject_quote(self, quote_id: str) -> Quote:
        quote = self.store.get_quote(quote_id)
        rejected = ql.reject(quote, self.clock())
        self.store.save_quote(rejected)
        self._log_quote("quote_transition", quote, rejected)
        return rejected

    def reopen_quote(self, quote_id: str) -> Quote:
        quote = self.store.get_quote(quote_id)
        reopened = ql.reopen(quote, self.clock())
        self.store.save_quote(reopened)
        self._log_quote("quote_transition", quote, reopened)
        return reopened

    def _shared_quote(self, token: str) -> Quote:
        quote_id = self.share_tokens.verify(
            token, max_age_seconds=self.settings.SHARE_TOKEN_TTL_DAYS * 24 * 3600
        )
        quote = self.store.find_quote_by_share_token(token)
        if quote is None or quote.id != quote_id:
            raise PreconditionError("Deellink is niet (meer) geldig", code="SHARE_INACTIVE")
        ql.ensure_share_active(quote, self.clock())
        return quote

    def view_shared_quote(self, token: str) -> Quote:
        quote = self._shared_quote(token)
        viewed = ql.mark_viewed(quote, self.clock())
        if viewed is not quote:
            self.store.save_quote(viewed)
            logger.info("quote_viewed", quote_id=quote.id)
        return viewed

    def respond_via_share_token(
        self,
        token: str,
        accepted: bool,
        *,
        comment: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> Tuple[Quote, Optional[Project]]:
        quote = self._shared_quote(token)
        now = self.clock()
        answered, event = ql.respond(quote, accepted, now, comment=comment, signature=signature)

        project: Optional[Project] = None
        with self.store.unit_of_work():
            self.store.save_quote(answered)
            if event is not None:
                project = self._spawn_project(answered, event.accepted_at)
        logger.info(
            "quote_customer_response",
            quote_id=quote.id,
            accepted=accepted,
            to_status=answered.status.value,
        )
        return answered, project

    def ask_question(self, token: str, text: str) -> Quote:
        quote = self._shared_quote(token)
        updated = ql.submit_question(quote, text, self.clock())
        self.store.save_quote(updated)
        logger.info("quote_question", quote_id=quote.id)
        return updated

    # -----------------------------
    # Project
    # -----------------------------

    def advance_project(
        self,
        project_id: str,
        *,
        actual_hours: Any = None,
        autosave: Optional[AutoSaveCoordinator] = None,
    ) -> Project:
        """Volgende projectstatus (lineair). actual_hours hoort bij het afronden van de nacalculatie."""
        if autosave is not None:
            autosave.save_now()

        project = self.store.get_project(project_id)
        if project.is_archived:
            raise PreconditionError("Project is gearchiveerd", code="PROJECT_ARCHIVED", meta={"project_id": project.id})

        idx = PROJECT_FLOW.index(project.status)
        target = PROJECT_FLOW[idx + 1] if idx + 1 < len(PROJECT_FLOW) else None
        # gefactureerd zet alleen generate_invoice
        if target is None or target is ProjectStatus.GEFACTUREERD:
            raise PreconditionError(
                f"Project kan niet verder vanuit '{project.status.value}'",
                code="ILLEGAL_TRANSITION",
                meta={"project_id": project.id, "status": project.status.value},
            )

        changes: Dict[str, Any] = {"status": target, "updated_at": self.clock()}
        if target is ProjectStatus.NACALCULATIE_COMPLEET:
            if actual_hours is None:
                raise PreconditionError(
                    "Gewerkte uren zijn nodig om de nacalculatie af te ronden",
                    code="ACTUAL_HOURS_REQUIRED",
                    meta={"project_id": project.id},
                )
            changes["actual_hours"] = _hours(actual_hours)

        updated = replace(project, **changes)
        self.store.save_project(updated)
        logger.info(
            "project_transition",
            project_id=project.id,
            from_status=project.status.value,
            to_status=target.value,
        )
        return updated

    # -----------------------------
    # Factuur
    # -----------------------------

    def generate_invoice(
        self,
        project_id: str,
        company: CompanyInfo,
        *,
        corrections: Iterable[Correction] = (),
        include_variance: bool = True,
    ) -> Invoice:
        project = self.store.get_project(project_id)
        if project.status is not ProjectStatus.NACALCULATIE_COMPLEET:
            raise PreconditionError(
                "Factuur kan pas na een complete nacalculatie",
                code="POST_CALCULATION_INCOMPLETE",
                meta={"project_id": project.id, "status": project.status.value},
            )
        if self.store.find_invoice_by_project(project.id) is not None:
            raise PreconditionError(
                "Project heeft al een factuur", code="INVOICE_EXISTS", meta={"project_id": project.id}
            )

        quote = self.store.get_quote(project.quote_id)
        all_corrections = list(corrections)
        if include_variance and quote.estimation is not None and project.actual_hours is not None:
            variance = inv.variance_correction(
                quote.estimation.norm_hours_total, project.actual_hours, self.pricing.default_hourly_rate
            )
            if variance is not None:
                all_corrections.append(variance)

        now = self.clock()
        with self.store.unit_of_work():
            invoice = inv.generate(
                invoice_id=uuid4().hex,
                number=self._number(INVOICE_NUMBERS, self.settings.INVOICE_NUMBER_PREFIX, now),
                project=project,
                quote=quote,
                pricing=self.pricing,
                company=company,
                now=now,
                payment_term_days=self.settings.PAYMENT_TERM_DAYS,
                corrections=all_corrections,
            )
            self.store.save_invoice(invoice)
            self.store.save_project(replace(project, status=ProjectStatus.GEFACTUREERD, updated_at=now))

        logger.info(
            "invoice_generated",
            invoice_id=invoice.id,
            number=invoice.number,
            project_id=project.id,
            total_incl_vat=str(invoice.total_incl_vat),
        )
        return invoice

    def _apply_invoice(self, invoice_id: str, fn: Callable[[Invoice, int], Invoice], event: str) -> Invoice:
        invoice = self.store.get_invoice(invoice_id)
        updated = fn(invoice, self.clock())
        self.store.save_invoice(updated)
        logger.info(
            event,
            invoice_id=invoice.id,
            from_status=invoice.status.value,
            to_status=updated.status.value,
        )
        return updated

    def update_invoice_corrections(self, invoice_id: str, corrections: Iterable[Correction]) -> Invoice:
        items = tuple(corrections)
        return self._apply_invoice(
            invoice_id, lambda i, now: inv.update_corrections(i, items, now), "invoice_updated"
        )

    def finalize_invoice(self, invoice_id: str) -> Invoice:
        return self._apply_invoice(invoice_id, inv.finalize, "invoice_transition")

    def unlock_invoice(self, invoice_id: str) -> Invoice:
        return self._apply_invoice(invoice_id, inv.unlock, "invoice_transition")

    def send_invoice(self, invoice_id: str) -> Invoice:
        return self._apply_invoice(invoice_id, inv.send, "invoice_transition")

    def resend_invoice(self, invoice_id: str) -> Invoice:
        return self._apply_invoice(invoice_id, inv.resend, "invoice_transition")

    def expire_overdue_invoices(self) -> List[Invoice]:
        now = self.clock()
        expired = []
        for invoice in self.store.list_invoices(status=InvoiceStatus.VERZONDEN):
            if invoice.is_overdue(now):
                updated = inv.expire(invoice, now)
                self.store.save_invoice(updated)
                expired.append(updated)
                logger.info("invoice_transition", invoice_id=invoice.id, from_status="verzonden", to_status="vervallen")
        return expired

    def settle_invoice(self, invoice_id: str, *, paid_at: Optional[int] = None) -> Tuple[Invoice, Project, Quote]:
        """
        Betaald markeren + project en offerte archiveren, samen of helemaal niet.
        Statusfouten (al betaald, nog concept) zijn PreconditionError; faalt het opslaan
        dan SettlementError en blijft alles zoals het was. Geen automatische retry.
        """
        invoice = self.store.get_invoice(invoice_id)
        now = self.clock()
        paid = inv.mark_paid(invoice, now, paid_at)

        project = self.store.get_project(invoice.project_id)
        quote = self.store.get_quote(project.quote_id)
        archived_project = replace(project, archived_at=now, updated_at=now)
        archived_quote = ql.archive(quote, now)

        try:
            with self.store.unit_of_work():
                self.store.save_invoice(paid)
                self.store.save_project(archived_project)
                self.store.save_quote(archived_quote)
        except HovenierError as e:
            logger.error("invoice_settlement_failed", invoice_id=invoice.id, error=str(e))
            raise SettlementError(
                "Betaling en archivering konden niet worden vastgelegd",
                meta={"invoice_id": invoice.id, "cause": e.code},
            ) from e
        except Exception as e:
            logger.error("invoice_settlement_failed", invoice_id=invoice.id, error=str(e))
            raise SettlementError(
                "Betaling en archivering konden niet worden vastgelegd",
                meta={"invoice_id": invoice.id, "cause": type(e).__name__},
            ) from e

        logger.info(
            "invoice_settled",
            invoice_id=invoice.id,
            from_status=invoice.status.value,
            project_id=project.id,
            quote_id=quote.id,
        )
        return paid, archived_project, archived_quote

    # -----------------------------
    # Stepper
    # -----------------------------

    def workflow_steps(self, quote_id: str) -> List[StepView]:
        """Positie in de flow op basis van de verste entiteit die bestaat."""
        quote = self.store.get_quote(quote_id)
        project = self.store.find_project_by_quote(quote.id)
        if project is None:
            return workflow_position(EntityType.QUOTE, quote.status.value)
        invoice = self.store.find_invoice_by_project(project.id)
        if invoice is None:
            return workflow_position(EntityType.PROJECT, project.status.value)
        return workflow_position(EntityType.INVOICE, invoice.status.value)
