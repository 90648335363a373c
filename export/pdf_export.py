from __future__ import annotations
from typing import BinaryIO, Iterable, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from sellerfin.models import OfferResult

GRID = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
    ('BOX', (0, 0), (-1, -1), 1, colors.black),
    ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
])


def _money(v: float) -> str:
    return f"{v:,.2f}"


def build_offers_pdf(out: Union[str, BinaryIO], offers: Iterable[OfferResult], property_address: str = "") -> None:
    """Write a seller finance comparison PDF to a path or binary file object."""
    offers = list(offers)
    styles = getSampleStyleSheet()
    doc = SimpleDocTemplate(out, pagesize=landscape(LETTER), leftMargin=36, rightMargin=36, topMargin=36, bottomMargin=36)
    story = [Paragraph("<b>Seller Finance Deal Analysis</b>", styles['Title']), Spacer(1, 6)]
    if property_address:
        story += [Paragraph(f"Property: {property_address}", styles['Normal']), Spacer(1, 12)]

    rows = [["Offer", "Buyable", "Viability", "Offer Price", "Down Payment", "Entry Fee", "Entry Fee %",
             "Monthly Payment", "Amortization", "Cash Flow", "Net Yield %", "Balloon"]]
    for o in offers:
        if not o.is_buyable:
            rows.append([o.offer_type, "No", o.deal_viability] + [""] * 9)
            continue
        rows.append([
            o.offer_type, "Yes", o.deal_viability, _money(o.final_offer_price), _money(o.down_payment),
            _money(o.final_entry_fee_amount), f"{o.final_entry_fee_percent:.1f}", _money(o.monthly_payment),
            f"{o.amortization_years:g} yrs", _money(o.final_monthly_cash_flow), f"{o.net_rental_yield:.2f}",
            f"{_money(o.balloon_payment)} @ {o.balloon_period} yrs",
        ])
    t = Table(rows, hAlign='LEFT')
    t.setStyle(GRID)
    story += [t, Spacer(1, 12)]

    notes = [["Offer", "Notes"]]
    for o in offers:
        for reason in o.viability_reasons:
            notes.append([o.offer_type, Paragraph(reason, styles['Normal'])])
    if len(notes) > 1:
        t = Table(notes, hAlign='LEFT', colWidths=[140, 560])
        t.setStyle(GRID)
        story += [Paragraph("<b>Viability</b>", styles['Heading3']), Spacer(1, 6), t]
    doc.build(story)
