from __future__ import annotations
from io import BytesIO
from typing import Dict, Any, List, Mapping, Optional, Sequence
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib import colors

def _safe(s: Any) -> str:
    if s is None:
        return ""
    return str(s).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

def evolution_to_pdf_bytes(
    history: Sequence[Mapping[str, Any]],
    insights: Sequence[Mapping[str, Any]],
    names: Optional[Mapping[str, str]] = None,
    summary: Optional[Dict[str, Any]] = None,
) -> bytes:
    """Evolution report: summary figures, insights and the day-by-day score table."""
    names = names or {}
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=0.6*inch,
        rightMargin=0.6*inch,
        topMargin=0.8*inch,
        bottomMargin=0.8*inch,
        title="Rapport Bien-être",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "WellnessTitle",
        parent=styles["Title"],
        textColor=colors.HexColor("#111111"),
        spaceAfter=12,
    )
    h_style = ParagraphStyle(
        "WellnessH2",
        parent=styles["Heading2"],
        textColor=colors.HexColor("#111111"),
        spaceBefore=10,
        spaceAfter=6,
    )
    b_style = ParagraphStyle(
        "WellnessBody",
        parent=styles["BodyText"],
        leading=14,
        spaceAfter=6,
    )
    small_style = ParagraphStyle(
        "WellnessSmall",
        parent=styles["BodyText"],
        fontSize=8,
        leading=10,
    )

    flow = []
    flow.append(Paragraph(f"Rapport Bien-être, {len(history)} jours", title_style))

    if summary:
        lines = []
        for k, label in [("average", "Score moyen"), ("trend", "Tendance"), ("best", "Meilleur jour")]:
            v = summary.get(k)
            if v not in (None, ""):
                lines.append(f"<b>{label}:</b> {_safe(v)}")
        if lines:
            flow.append(Paragraph("<br/>".join(lines), b_style))
            flow.append(Spacer(1, 6))

    flow.append(Paragraph("Insights", h_style))
    if insights:
        for ins in insights:
            flow.append(Paragraph(f"<b>{_safe(ins.get('title'))}</b>", b_style))
            flow.append(Paragraph(_safe(ins.get("description")), b_style))
    else:
        flow.append(Paragraph("Aucun insight pour cette période.", b_style))

    flow.append(Paragraph("Historique", h_style))
    pillar_ids: List[str] = list(history[0]["pillars"]) if history else []
    header = ["Date", "Global"] + [names.get(pid, pid) for pid in pillar_ids]
    rows = [[Paragraph(_safe(h), small_style) for h in header]]
    for p in history:
        rows.append([p["date"], str(p["global"])] + [str(p["pillars"].get(pid, 0)) for pid in pillar_ids])

    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#EEEEEE")),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#CCCCCC")),
        ("FONTSIZE", (0, 1), (-1, -1), 8),
        ("ALIGN", (1, 1), (-1, -1), "CENTER"),
    ]))
    flow.append(table)

    doc.build(flow)
    return buf.getvalue()
