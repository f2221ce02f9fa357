import logging
import uuid
from datetime import datetime
from typing import Tuple

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.errors import ExternalServiceError, NotFoundError
from app.models.budget import BudgetInDB, BudgetPublic
from app.models.goal import GoalInDB, GoalPublic
from app.routers.deps import get_current_user_id, get_date_range, get_engine, get_period_label, get_store, ok
from app.utils import exporter
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.date_ranges import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)

DateRange = Tuple[datetime, datetime]


def _attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _stamp() -> str:
    return utcnow().strftime("%Y%m%d")


@router.get("/transactions.csv")
def export_transactions_csv(
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    transactions = store.find_transactions(user_id, *date_range)
    logger.info(f"Exporting {len(transactions)} transactions for user {user_id}")
    return _attachment(exporter.transactions_csv(transactions), "text/csv", f"transactions_{_stamp()}.csv")


@router.get("/budgets.csv")
def export_budgets_csv(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    rows = []
    for record in store.list_budgets(user_id):
        engine.refresh_budget_spent(user_id, record)
        rows.append(BudgetPublic.from_budget(BudgetInDB(**record)).model_dump(mode="json"))
    return _attachment(exporter.budgets_csv(rows), "text/csv", f"budgets_{_stamp()}.csv")


@router.get("/goals.csv")
def export_goals_csv(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    rows = [GoalPublic.from_goal(GoalInDB(**record)).model_dump(mode="json") for record in store.list_goals(user_id)]
    return _attachment(exporter.goals_csv(rows), "text/csv", f"goals_{_stamp()}.csv")


@router.get("/report.pdf")
def export_report_pdf(
    archive: bool = False,
    date_range: DateRange = Depends(get_date_range),
    label: str = Depends(get_period_label),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """
    Render the comprehensive report as a PDF. With ``archive=true`` the file
    is uploaded to S3 and its URL returned instead of the document.
    """
    user = store.get_user_by_id(user_id) or {}
    report = engine.report(user_id, *date_range)
    pdf_bytes = exporter.report_pdf(
        report,
        title=f"Financial Report - {label}",
        user_name=user.get("name") or user.get("email", ""),
    )

    if not archive:
        return _attachment(pdf_bytes, "application/pdf", f"report_{_stamp()}.pdf")

    report_id = f"{_stamp()}_{uuid.uuid4().hex[:6]}"
    url = exporter.upload_report(user_id, pdf_bytes, report_id)
    if not url:
        raise ExternalServiceError("Report could not be archived")
    return ok({"report_id": report_id, "url": url}, "Report archived successfully")


@router.get("/data.json")
def export_data_json(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    user = store.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")

    def strip(records):
        return [{k: v for k, v in r.items() if k not in ("user_id", "owner_id")} for r in records]

    transactions = store.find_transactions(user_id)
    data = exporter.data_export(
        user=user,
        transactions=strip(transactions),
        budgets=strip(store.list_budgets(user_id)),
        goals=strip(store.list_goals(user_id)),
        categories=strip(store.list_categories(user_id)),
        recurring=strip(store.list_recurring(user_id)),
        overview=engine.analyzer.spending_overview(transactions),
    )
    return ok(data)
