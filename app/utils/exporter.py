import csv
import io
import logging
from typing import Any, Dict, Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fpdf import FPDF, XPos, YPos

from app.core.config import settings
from app.utils.date_ranges import parse_instant, to_iso, utcnow

logger = logging.getLogger(__name__)

# Initialize S3 client using default AWS credential chain
# (environment variables, AWS credentials file, or IAM role)
s3 = boto3.client("s3", region_name=settings.S3_REGION)

TRANSACTION_FIELDS = ["date", "type", "category", "amount", "description", "payment_method", "tags", "notes"]
BUDGET_FIELDS = [
    "name", "category", "amount", "spent", "remaining", "percent_used",
    "status", "period", "start_date", "end_date", "alert_threshold", "is_active",
]
GOAL_FIELDS = [
    "name", "category", "target_amount", "current_amount", "progress",
    "status", "priority", "target_date", "days_remaining",
]


def _write_csv(fieldnames: List[str], rows: Iterable[Dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if row.get(k) is None else row.get(k) for k in fieldnames})
    return output.getvalue()


def transactions_csv(transactions: Iterable[Dict[str, Any]]) -> str:
    rows = []
    for t in transactions:
        rows.append({
            **t,
            "date": parse_instant(t["date"]).strftime("%Y-%m-%d"),
            "tags": ";".join(t.get("tags") or []),
        })
    return _write_csv(TRANSACTION_FIELDS, rows)


def budgets_csv(budgets: Iterable[Dict[str, Any]]) -> str:
    return _write_csv(BUDGET_FIELDS, budgets)


def goals_csv(goals: Iterable[Dict[str, Any]]) -> str:
    return _write_csv(GOAL_FIELDS, goals)


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover latin-1; category icons and the like are dropped.
    return str(text).encode("latin-1", "ignore").decode("latin-1").strip()


class _ReportPDF(FPDF):
    def heading(self, text: str) -> None:
        self.ln(4)
        self.set_font("Helvetica", "B", 12)
        self.cell(0, 8, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font("Helvetica", "", 11)

    def line_item(self, text: str) -> None:
        self.cell(0, 7, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def report_pdf(report: Dict[str, Any], title: str = "Financial Report", user_name: str = "") -> bytes:
    """
    Render a comprehensive report (as built by ``AnalyticsEngine.report``)
    into PDF bytes.
    """
    pdf = _ReportPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.set_font("Helvetica", "", 11)
    if user_name:
        pdf.line_item(f"Prepared for: {user_name}")
    pdf.line_item(f"Generated: {parse_instant(report.get('generated_at') or utcnow()).strftime('%Y-%m-%d %H:%M')} UTC")

    overview = report["overview"]
    pdf.heading("Overview")
    pdf.line_item(f"Total Income: ${overview['total_income']:.2f}")
    pdf.line_item(f"Total Expenses: ${overview['total_expenses']:.2f}")
    pdf.line_item(f"Net Savings: ${overview['net_savings']:.2f}")
    pdf.line_item(f"Savings Rate: {overview['savings_rate']:.2f}%")
    pdf.line_item(f"Transactions: {overview['transaction_count']}")

    pdf.heading("Top Spending Categories")
    top_categories = report.get("top_categories") or []
    if top_categories:
        for row in top_categories:
            pdf.line_item(f"- {row['name']}: ${row['total']:.2f} ({row['percentage']:.2f}%, {row['count']} transactions)")
    else:
        pdf.line_item("None")

    pdf.heading("Budget Performance")
    budgets = report.get("budget_performance") or []
    if budgets:
        for row in budgets:
            pdf.line_item(
                f"- {row['category']}: ${row['spent']:.2f} of ${row['budget_amount']:.2f} "
                f"({row['percent_used']:.2f}%, {row['status']})"
            )
    else:
        pdf.line_item("No active budgets")

    pdf.heading("Goal Progress")
    goals = (report.get("goal_progress") or {}).get("goals") or []
    if goals:
        for goal in goals:
            pdf.line_item(
                f"- {goal['name']}: ${goal['current_amount']:.2f} of ${goal['target_amount']:.2f} "
                f"({goal['progress']:.2f}%, {goal['status']})"
            )
    else:
        pdf.line_item("No goals")

    insights = report.get("insights") or []
    if insights:
        pdf.heading("Insights")
        for insight in insights:
            pdf.multi_cell(0, 7, _latin1(f"- {insight['message']}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    return bytes(pdf.output())


def data_export(
    user: Dict[str, Any],
    transactions: List[Dict[str, Any]],
    budgets: List[Dict[str, Any]],
    goals: List[Dict[str, Any]],
    categories: List[Dict[str, Any]],
    recurring: List[Dict[str, Any]],
    overview: Dict[str, Any],
) -> Dict[str, Any]:
    """Everything a user owns, plus an all-time overview, as one JSON document."""
    return {
        "exported_at": to_iso(utcnow()),
        "user": {k: user.get(k) for k in ("user_id", "email", "name", "created_at")},
        "summary": {
            **overview,
            "budget_count": len(budgets),
            "goal_count": len(goals),
            "category_count": len(categories),
            "recurring_count": len(recurring),
        },
        "transactions": transactions,
        "budgets": budgets,
        "goals": goals,
        "categories": categories,
        "recurring_transactions": recurring,
    }


def upload_report(user_id: str, pdf_bytes: bytes, report_id: str) -> Optional[str]:
    """Archive a rendered report in S3. Returns its URL, or None when the upload failed."""
    if not settings.S3_BUCKET_NAME:
        logger.warning("S3_BUCKET_NAME is not configured; report not archived")
        return None
    s3_key = f"reports/{user_id}/{report_id}.pdf"
    try:
        s3.upload_fileobj(
            io.BytesIO(pdf_bytes),
            settings.S3_BUCKET_NAME,
            s3_key,
            ExtraArgs={"ContentType": "application/pdf"},
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to upload report {report_id}: {str(e)}")
        return None
    logger.info(f"Archived report {report_id} for user {user_id}")
    return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{s3_key}"
