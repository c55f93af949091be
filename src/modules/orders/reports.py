"""Tabular export of the order ledger.

One row per order, in ledger insertion order, with the columns of
``REPORT_COLUMNS``.  ``build_rows`` is the format-independent part;
``export_orders_xlsx`` renders it as an Excel workbook with openpyxl.
"""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, NamedTuple, Optional

import structlog
from openpyxl import Workbook
from openpyxl.styles import Font

if TYPE_CHECKING:
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)

REPORT_COLUMNS = (
    "Invoice",
    "Date",
    "Buyer",
    "Items",
    "Total",
    "Status",
    "Verified By",
    "Verified At",
    "Notes",
    "Payment Proof",
)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DATE_FORMAT = "%Y-%m-%d %H:%M"


class ReportRow(NamedTuple):
    invoice: str
    date: str
    buyer: str
    items: str
    total: int
    status: str
    verified_by: str
    verified_at: str
    notes: str
    payment_proof: str


ProofResolver = Callable[[str], Optional[str]]


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime(DATE_FORMAT) if value else ""


def _proof(file_ref: str, proof_url: Optional[ProofResolver]) -> str:
    if not file_ref or proof_url is None:
        return file_ref
    return proof_url(file_ref) or file_ref


def build_rows(
    orders: Iterable[Order], proof_url: Optional[ProofResolver] = None
) -> Iterator[ReportRow]:
    """Yield one row per order.  *proof_url* turns a proof file ref into a link."""
    for order in orders:
        buyer = order.buyer_name or order.buyer_id
        if order.buyer_name:
            buyer = f"{order.buyer_name} ({order.buyer_id})"
        yield ReportRow(
            invoice=order.invoice,
            date=_fmt(order.created_at),
            buyer=buyer,
            items=order.items_summary,
            total=order.total_price,
            status=str(order.status),
            verified_by=order.verified_by or "",
            verified_at=_fmt(order.verified_at),
            notes=order.notes,
            payment_proof=_proof(order.payment_proof, proof_url),
        )


def export_filename(now: datetime) -> str:
    return f"orders-{now:%Y%m%d-%H%M}.xlsx"


def export_orders_xlsx(
    orders: Iterable[Order], proof_url: Optional[ProofResolver] = None
) -> bytes:
    """Render the ledger as an ``.xlsx`` workbook and return its bytes."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Orders"
    sheet.append(list(REPORT_COLUMNS))
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    count = 0
    for row in build_rows(orders, proof_url):
        sheet.append(list(row))
        count += 1

    buffer = BytesIO()
    workbook.save(buffer)
    logger.info("order.report_exported", rows=count)
    return buffer.getvalue()
