"""ESG report export: JSON payload and an openpyxl workbook."""

import io
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from esg_portal.models import PILLARS, metric_records_for
from esg_portal.readiness import compliance_dashboard
from esg_portal.scoring import PILLAR_KEYS, evaluate_all

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REPORT_FORMATS = ("json", "excel")

_HEADER_FILL = PatternFill(start_color="1B5E20", end_color="1B5E20", fill_type="solid")
_HEADER_FONT = Font(color="FFFFFF", bold=True)


def build_report(company, period, scorecard):
    """JSON report for one company/period. `scorecard` may be None."""
    records = metric_records_for(company.id, period)
    return {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "company": company.to_dict(),
        "period": period,
        "scorecard": scorecard,
        "compliance": compliance_dashboard(period, evaluate_all(records)),
        "metrics": {PILLAR_KEYS[p]: records[p] for p in PILLARS},
    }


def _header_row(ws, headers):
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")


def _autowidth(ws):
    for col_idx, column in enumerate(ws.iter_cols(), 1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(col_idx)].width = min(longest + 4, 60)


def _summary_sheet(ws, report):
    ws.title = "Summary"
    company = report["company"]
    card = report["scorecard"] or {}
    compliance = report["compliance"]

    ws.merge_cells("A1:B1")
    ws["A1"] = f"ESG Report: {company['name']}"
    ws["A1"].font = Font(bold=True, size=14)

    rows = [
        ("Period", report["period"]),
        ("Industry", company.get("industry") or ""),
        ("Generated", report["generatedAt"]),
        ("Overall score", card.get("overallScore")),
        ("Overall grade", (card.get("overallGrade") or {}).get("grade")),
        ("Risk level", (card.get("overallRisk") or {}).get("level")),
        ("Environmental score", card.get("environmentalScore")),
        ("Social score", card.get("socialScore")),
        ("Governance score", card.get("governanceScore")),
        ("Data completeness (%)", card.get("dataCompleteness")),
        ("BRSR readiness (%)", compliance["readiness"]),
        ("Readiness", compliance["message"]),
    ]
    for row_idx, (label, value) in enumerate(rows, 3):
        ws.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row_idx, column=2, value="" if value is None else value)
    ws.column_dimensions["A"].width = 26
    ws.column_dimensions["B"].width = 60


def _breakdown_sheet(ws, report):
    _header_row(ws, ["Area", "Requirement ID", "Requirement", "Category", "Critical", "Covered"])
    row = 2
    for entry in report["compliance"]["breakdown"]:
        for req in entry["requirements"]:
            ws.cell(row=row, column=1, value=entry["area"])
            ws.cell(row=row, column=2, value=req["id"])
            ws.cell(row=row, column=3, value=req["requirement"])
            ws.cell(row=row, column=4, value=req["category"])
            ws.cell(row=row, column=5, value="Yes" if req["critical"] else "No")
            ws.cell(row=row, column=6, value="Yes" if req["covered"] else "No")
            row += 1
    _autowidth(ws)


def _next_steps_sheet(ws, report):
    steps = report["compliance"]["nextSteps"]
    if not steps:
        ws["A1"] = "No next steps for this period."
        return
    _header_row(ws, ["Priority", "Area", "Action", "Requirement"])
    for row, step in enumerate(steps, 2):
        ws.cell(row=row, column=1, value=step["priority"].title())
        ws.cell(row=row, column=2, value=step["area"])
        ws.cell(row=row, column=3, value=step["action"])
        ws.cell(row=row, column=4, value=step["requirement"])
    _autowidth(ws)


def report_workbook(report):
    """Render a report dict to .xlsx bytes."""
    wb = Workbook()
    _summary_sheet(wb.active, report)
    _breakdown_sheet(wb.create_sheet(title="Breakdown"), report)
    _next_steps_sheet(wb.create_sheet(title="Next Steps"), report)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
