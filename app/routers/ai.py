from datetime import datetime
from typing import Optional, Tuple

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.routers.deps import get_current_user_id, get_date_range, get_engine, ok
from app.utils.ai_advisor import generate_advice
from app.utils.analytics_engine import AnalyticsEngine

router = APIRouter()

DateRange = Tuple[datetime, datetime]


class AdviceRequest(BaseModel):
    question: Optional[str] = Field(default="", max_length=1000)


@router.post("/advice")
async def ai_advice(
    request: AdviceRequest,
    date_range: DateRange = Depends(get_date_range),
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Budgeting advice for the selected period; offline brief when no API key is configured."""
    data = await run_in_threadpool(engine.dashboard, user_id, *date_range)
    mode, advice = await run_in_threadpool(
        generate_advice,
        data["overview"],
        data["category_breakdown"],
        data["budget_performance"],
        data["goal_progress"],
        data["insights"],
        request.question or "",
    )
    return ok({"mode": mode, "advice": advice, "overview": data["overview"]})
