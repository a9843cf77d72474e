"""Lab analyses history screen: filters, cascade, exports and report email."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Any

from calcana_sync.action_messages import (
    build_actionable_error,
    build_send_report_confirmation_prompt,
)
from calcana_sync.cascade import FilterCascade
from calcana_sync.debounce import DebouncedValue
from calcana_sync.errors import REMOTE_FAILURES, ValidationError, classify_remote_error
from calcana_sync.export import (
    bulletin_filename,
    excel_report_filename,
    get_report_download_path,
)
from calcana_sync.list_query import ListQueryController
from calcana_sync.models import (
    ALL_PROPERTIES,
    ALL_SUPPLIERS,
    ANALYSES_PAGE_SIZE,
    ANALYSES_SUPPLIER_LOOKUP_SIZE,
    EXPORT_LAYOUTS,
    STATUS_ACTIVE,
    Analysis,
    PageEnvelope,
    PropertyOption,
    Supplier,
)
from calcana_sync.mutations import MutationExecutor, MutationOutcome, MutationSpec, PendingAction
from calcana_sync.parsing import parse_analysis, parse_property_option, parse_supplier
from calcana_sync.query import FilterField, ListQuery
from calcana_sync.screens.suppliers import SUPPLIERS_PATH
from calcana_sync.services.report_service import EXCEL_REPORT_PATH, bulletin_path
from calcana_sync.ui_runtime import ScreenContext

logger = logging.getLogger(__name__)

ANALYSES_PATH = "/analises"

ANALYSIS_FIELDS = (
    FilterField("supplier", "fornecedorId", unset_values=("", ALL_SUPPLIERS)),
    FilterField("property", "propriedadeIds", unset_values=("", ALL_PROPERTIES)),
    FilterField("plot", "talhao"),
    FilterField("date_from", "dataInicio"),
    FilterField("date_to", "dataFim"),
)

SUPPLIER_LOOKUP_QUERY = ListQuery(
    path=SUPPLIERS_PATH,
    page=0,
    size=ANALYSES_SUPPLIER_LOOKUP_SIZE,
    params=(("status", STATUS_ACTIVE), ("size", str(ANALYSES_SUPPLIER_LOOKUP_SIZE))),
)


def properties_by_supplier_path(supplier_id: str) -> str:
    return f"/propriedades/por-fornecedor/{supplier_id}"


def _parse_iso_date(value: str, label: str) -> date | None:
    value = value.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{label} must be a date in YYYY-MM-DD format.") from exc


class AnalysesScreen:
    """Server-paginated analysis history with dependent supplier/property filters.

    Every role may use this screen. The report email is the only mutation and
    is reconciled by patching the affected row in place.
    """

    title = "Analyses"

    def __init__(self, ctx: ScreenContext) -> None:
        self.ctx = ctx
        self.suppliers: list[Supplier] = []
        self.exporting = False
        self.list = ListQueryController(
            path=ANALYSES_PATH,
            fields=ANALYSIS_FIELDS,
            page_size=ANALYSES_PAGE_SIZE,
            fetch_page=self._fetch_page,
            notifier=ctx.notifier,
            title=self.title,
            noun="analysis",
            noun_plural="analyses",
            item_id=lambda a: a.analysis_id,
        )
        self.cascade = FilterCascade(
            fetch_options=self._fetch_property_options,
            notifier=ctx.notifier,
            title=self.title,
            option_noun="properties",
            option_id=lambda p: p.property_id,
            parent_unset_values=("", ALL_SUPPLIERS),
            child_unset_values=("", ALL_PROPERTIES),
        )
        self.plot = DebouncedValue(
            "",
            ctx.config.search_debounce_seconds,
            self._on_plot_settled,
            scheduler=ctx.scheduler,
        )
        self.mutations = MutationExecutor(
            specs=[
                MutationSpec(
                    kind="send_report",
                    execute=self._execute_send_report,
                    reconcile=self._mark_report_sent,
                    success_message=lambda a: "Report emailed to the supplier.",
                    failure_action="email the report",
                    failure_next_step="check that the supplier has an email address",
                ),
            ],
            notifier=ctx.notifier,
            title=self.title,
        )

    @property
    def property_options(self) -> list[PropertyOption]:
        return self.cascade.options

    async def start(self) -> None:
        await asyncio.gather(self.list.refresh(), self.load_suppliers())

    async def load_suppliers(self) -> bool:
        try:
            envelope = await self.ctx.services.resources.fetch_page(
                client=self.ctx.client,
                config=self.ctx.config,
                query=SUPPLIER_LOOKUP_QUERY,
                parse_item=parse_supplier,
            )
        except REMOTE_FAILURES as exc:
            error = classify_remote_error(exc, "the server did not return the supplier list")
            self.ctx.notifier.notify(
                build_actionable_error(
                    "load suppliers", why=error.message, next_step="reload the screen"
                ),
                title=self.title,
                severity="error",
            )
            logger.warning("Loading supplier filter options failed: %s", exc)
            return False
        self.suppliers = list(envelope.items)
        return True

    # ── Filters ──────────────────────────────────────────────────────────

    async def set_supplier(self, value: str) -> None:
        """Change the supplier filter; clears the property filter and reloads its options."""
        await asyncio.gather(
            self.cascade.set_parent(value),
            self.list.set_filters({"supplier": value, "property": ""}),
        )

    async def set_property(self, value: str) -> bool:
        try:
            self.cascade.set_child(value)
        except ValueError as exc:
            self.ctx.notifier.notify(str(exc), title=self.title, severity="warning")
            return False
        return await self.list.set_filter("property", value)

    def type_plot(self, text: str) -> None:
        """Feed one keystroke's worth of plot (talhão) text."""
        self.plot.push(text)

    def _on_plot_settled(self, value: str) -> None:
        self.ctx.tasks.track(self.list.set_filter("plot", value.strip()))

    async def set_date_range(self, date_from: str = "", date_to: str = "") -> bool:
        try:
            start = _parse_iso_date(date_from, "Start date")
            end = _parse_iso_date(date_to, "End date")
            if start and end and start > end:
                raise ValidationError("Start date must not be after end date.")
        except ValidationError as exc:
            self.ctx.notifier.notify(exc.message, title=self.title, severity="warning")
            return False
        return await self.list.set_filters(
            {"date_from": date_from.strip(), "date_to": date_to.strip()}
        )

    async def apply_filters(self) -> bool:
        """Explicit "Filter" request: settle typed text, reload page 0 and announce the count."""
        plot = self.plot.pending.strip()
        self.plot.reset(plot)
        await self.list.set_filters({"plot": plot}, fetch=False)
        return await self.list.reload_first_page(announce=True)

    async def clear_filters(self) -> bool:
        self.plot.reset("")
        self.cascade.reset()
        await self.list.reset_filters(announce=True)
        return self.list.state.request_state == "loaded"

    async def next_page(self) -> bool:
        return await self.list.next_page()

    async def previous_page(self) -> bool:
        return await self.list.previous_page()

    async def go_to_page(self, page: int) -> bool:
        return await self.list.set_page(page)

    def detail(self, analysis_id: int) -> Analysis | None:
        return self.list.find_item(analysis_id)

    async def _fetch_page(self, query: ListQuery) -> PageEnvelope:
        return await self.ctx.services.resources.fetch_page(
            client=self.ctx.client,
            config=self.ctx.config,
            query=query,
            parse_item=parse_analysis,
        )

    async def _fetch_property_options(self, supplier_id: str) -> list:
        return await self.ctx.services.resources.fetch_list(
            client=self.ctx.client,
            config=self.ctx.config,
            path=properties_by_supplier_path(supplier_id),
            parse_item=parse_property_option,
        )

    # ── Reports ──────────────────────────────────────────────────────────

    def export_params(self, layout: str) -> dict[str, str]:
        """Spreadsheet request parameters: the layout plus the current filters, no paging."""
        params = {"layout": layout}
        for key, value in self.list.current_query().params:
            if key not in ("page", "size"):
                params[key] = value
        return params

    async def export_excel(
        self, layout: str = "default", *, today: date | None = None
    ) -> Path | None:
        """Download the filtered analyses as a spreadsheet. Returns the saved path."""
        if layout not in EXPORT_LAYOUTS:
            self.ctx.notifier.notify(
                f"Unknown layout {layout!r}. Choose one of: {', '.join(EXPORT_LAYOUTS)}.",
                title=self.title,
                severity="warning",
            )
            return None
        filename = excel_report_filename(layout, today)
        destination = get_report_download_path(filename, self.ctx.config)
        return await self._download(
            EXCEL_REPORT_PATH,
            destination,
            params=self.export_params(layout),
            what="the Excel report",
        )

    async def download_bulletin(self, analysis_id: int) -> Path | None:
        """Download the PDF bulletin of an analysis on the current page."""
        analysis = self.list.find_item(analysis_id)
        if analysis is None:
            logger.debug("Analysis %d is not on the current page", analysis_id)
            return None
        destination = get_report_download_path(
            bulletin_filename(analysis.sample_number), self.ctx.config
        )
        return await self._download(
            bulletin_path(analysis_id), destination, params=None, what="the PDF bulletin"
        )

    async def _download(
        self,
        path: str,
        destination: Path,
        *,
        params: dict[str, str] | None,
        what: str,
    ) -> Path | None:
        if self.exporting:
            logger.debug("Ignoring download of %s while another is running", path)
            return None
        self.exporting = True
        try:
            ok = await self.ctx.services.reports.download_report(
                client=self.ctx.client,
                config=self.ctx.config,
                path=path,
                destination=destination,
                params=params,
            )
        finally:
            self.exporting = False
        if not ok:
            self.ctx.notifier.notify(
                build_actionable_error(f"download {what}", next_step="try again"),
                title=self.title,
                severity="error",
            )
            return None
        self.ctx.notifier.notify(
            f"Saved {destination.name} to {destination.parent}.", title=self.title
        )
        return destination

    def request_send_report(self, analysis_id: int) -> str | None:
        """Stage the report email. Returns the confirmation prompt."""
        analysis = self.list.find_item(analysis_id)
        if analysis is None:
            logger.debug("Analysis %d is not on the current page", analysis_id)
            return None
        supplier = analysis.property.supplier if analysis.property else None
        label = f"#{analysis.sample_number}"
        if not self.mutations.request_action("send_report", analysis_id, label):
            return None
        return build_send_report_confirmation_prompt(
            analysis.sample_number, supplier.name if supplier else ""
        )

    async def confirm(self) -> MutationOutcome | None:
        return await self.mutations.confirm()

    def cancel(self) -> bool:
        return self.mutations.cancel()

    async def _execute_send_report(self, action: PendingAction) -> None:
        await self.ctx.services.reports.send_report(
            client=self.ctx.client, config=self.ctx.config, analysis_id=action.target_id
        )

    async def _mark_report_sent(self, action: PendingAction, result: Any) -> None:
        self.list.patch_item(action.target_id, report_sent=True)

    async def aclose(self) -> None:
        self.plot.cancel()
        await self.ctx.tasks.aclose()


__all__ = [
    "ANALYSES_PATH",
    "ANALYSIS_FIELDS",
    "AnalysesScreen",
    "properties_by_supplier_path",
]
