"""
RMS Reporting Engine — Export Renderers
=========================================
Turns report rows plus their grand total into CSV text, a printable
HTML document or a fixed-width text table.

Doctrine:
- Pure functions of (rows, total): same input → same output
- The printable currency prefix defaults to RMS_CURRENCY_SYMBOL
- Sales always render with 2 decimals, half-up
- All text placed in HTML is escaped
"""

from __future__ import annotations

import csv
import html
import io
from typing import Any, Iterable, List, Optional, Sequence

from core.config import load_settings
from core.primitives.money import format_money
from engines.reporting.services import ReportRow

COLUMNS = ("Period", "Orders", "Items", "Sales", "Paid", "Loan", "Pending")


def _cells(row: ReportRow, currency_symbol: str = "") -> List[str]:
    return [
        row.label,
        str(row.orders_count),
        str(row.items_count),
        f"{currency_symbol}{format_money(row.sales)}",
        str(row.paid),
        str(row.loan),
        str(row.pending),
    ]


def _e(value: Any) -> str:
    return html.escape(str(value) if value is not None else "", quote=True)


# ══════════════════════════════════════════════════════════════
# CSV
# ══════════════════════════════════════════════════════════════

def to_csv(rows: Iterable[ReportRow], total: ReportRow) -> str:
    """
    Period,Orders,Items,Sales,Paid,Loan,Pending
    2024-01-06,1,1,10.00,0,1,0
    Total,...

    Lines are separated by '\\n' with no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(COLUMNS)
    for row in rows:
        writer.writerow(_cells(row))
    writer.writerow(_cells(total))
    return buffer.getvalue().rstrip("\n")


# ══════════════════════════════════════════════════════════════
# PRINTABLE HTML
# ══════════════════════════════════════════════════════════════

def to_printable(
    rows: Iterable[ReportRow],
    total: ReportRow,
    *,
    title: str = "Reports",
    currency_symbol: Optional[str] = None,
) -> str:
    if currency_symbol is None:
        currency_symbol = load_settings().currency_symbol
    header_cells = "".join(f"<th>{_e(c)}</th>" for c in COLUMNS)
    lines = [
        "<html>",
        f"<head><title>{_e(title)}</title></head>",
        "<body>",
        f"<h2>{_e(title)}</h2>",
        '<table border="1" cellspacing="0" cellpadding="6">',
        f"<tr>{header_cells}</tr>",
    ]
    for row in rows:
        cells = "".join(f"<td>{_e(c)}</td>" for c in _cells(row, currency_symbol))
        lines.append(f"<tr>{cells}</tr>")

    total_cells = _cells(total, currency_symbol)
    lines.append(
        f"<tr><td><strong>{_e(total_cells[0])}</strong></td>"
        + "".join(f"<td>{_e(c)}</td>" for c in total_cells[1:])
        + "</tr>"
    )
    lines += ["</table>", "</body>", "</html>"]
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════
# PLAIN TEXT
# ══════════════════════════════════════════════════════════════

def to_text_table(rows: Iterable[ReportRow], total: ReportRow) -> str:
    body: List[Sequence[str]] = [_cells(r) for r in rows]
    footer = _cells(total)
    table = [list(COLUMNS)] + body + [footer]
    widths = [max(len(line[i]) for line in table) for i in range(len(COLUMNS))]

    def render(cells: Sequence[str]) -> str:
        # first column left-aligned, numbers right-aligned
        parts = [cells[0].ljust(widths[0])]
        parts += [cell.rjust(widths[i]) for i, cell in enumerate(cells) if i > 0]
        return "  ".join(parts).rstrip()

    rule = "  ".join("-" * w for w in widths)
    out = [render(COLUMNS), rule]
    out += [render(cells) for cells in body]
    out += [rule, render(footer)]
    return "\n".join(out)
