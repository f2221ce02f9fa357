"""AI-assisted budgeting advice with a deterministic offline brief."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI, OpenAIError

from app.core.config import settings
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a careful personal finance coach. Give precise actions with numbers, "
    "state your assumptions, and avoid generic advice."
)


def _lines(rows: List[Dict[str, Any]], render, limit: int = 8) -> List[str]:
    if not rows:
        return ["(none)"]
    return [render(row) for row in rows[:limit]]


def build_offline_brief(
    overview: Dict[str, Any],
    categories: List[Dict[str, Any]],
    budgets: List[Dict[str, Any]],
    goals: Dict[str, Any],
    insights: List[Dict[str, Any]],
    question: str = "",
) -> str:
    """Summary built from the figures alone, used when no API key is configured."""
    lines = [
        "Offline Finance Brief",
        "",
        f"- Income: ${overview['total_income']:,.2f}",
        f"- Expenses: ${overview['total_expenses']:,.2f}",
        f"- Net savings: ${overview['net_savings']:,.2f}",
        f"- Savings rate: {overview['savings_rate']:.1f}%",
    ]
    if question.strip():
        lines.append(f"- Question: {question.strip()}")

    actions = []
    over = [b for b in budgets if b["status"] != "good"]
    for budget in over[:3]:
        actions.append(f"- Rein in {budget['category']} ({budget['percent_used']:.1f}% of budget used).")
    if categories:
        top = categories[0]
        actions.append(f"- Review {top['name']}, your largest expense at {top['percentage']:.1f}% of spending.")
    for insight in insights:
        if insight["priority"] == "high":
            actions.append(f"- {insight['message']}")
    if not actions:
        actions.append("- Continue current spending controls and monitor monthly trends.")

    lines.append("")
    lines.append("Priority actions:")
    lines.extend(actions)

    summary = goals.get("summary") or {}
    if summary.get("active"):
        lines.append("")
        lines.append(
            f"Goals: {summary['active']} active, {summary.get('overall_progress', 0):.1f}% of the combined target saved."
        )

    lines.append("")
    lines.append("Note: configure OPENAI_API_KEY for personalised AI advice.")
    return "\n".join(lines)


def build_prompt(
    overview: Dict[str, Any],
    categories: List[Dict[str, Any]],
    budgets: List[Dict[str, Any]],
    goals: Dict[str, Any],
    insights: List[Dict[str, Any]],
    question: str = "",
) -> str:
    lines = [
        "Analyze this personal finance snapshot and return concise, practical actions.",
        "Focus on: spending reduction, budget adherence, and progress toward savings goals.",
        "Return sections: Summary, Risks, 30-day actions.",
        "",
        f"User question: {question.strip() or '(not specified)'}",
        "",
        "Overview:",
        str(overview),
        "",
        "Expense categories:",
        *_lines(categories, lambda c: f"{c['name']}: ${c['total']:.2f} ({c['percentage']:.1f}%)", limit=10),
        "",
        "Budgets:",
        *_lines(
            budgets,
            lambda b: f"{b['category']}: ${b['spent']:.2f} of ${b['budget_amount']:.2f} ({b['status']})",
        ),
        "",
        "Goals:",
        *_lines(
            goals.get("goals") or [],
            lambda g: f"{g['name']}: {g['progress']:.1f}% saved, {g['days_remaining']} days left",
        ),
        "",
        "Rule-based insights:",
        *_lines(insights, lambda i: f"[{i['priority']}] {i['message']}"),
    ]
    return "\n".join(lines)


def generate_advice(
    overview: Dict[str, Any],
    categories: List[Dict[str, Any]],
    budgets: List[Dict[str, Any]],
    goals: Dict[str, Any],
    insights: List[Dict[str, Any]],
    question: str = "",
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> Tuple[str, str]:
    """Return (mode, advice). Mode is "offline" without an API key, "online" otherwise."""
    api_key = settings.OPENAI_API_KEY if api_key is None else api_key
    model = model or settings.OPENAI_MODEL
    if not api_key.strip():
        return "offline", build_offline_brief(overview, categories, budgets, goals, insights, question)

    prompt = build_prompt(overview, categories, budgets, goals, insights, question)
    try:
        client = OpenAI(api_key=api_key.strip())
        response = client.chat.completions.create(
            model=model,
            temperature=0.25,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
    except OpenAIError as e:
        logger.error(f"AI advice request failed: {str(e)}", exc_info=True)
        raise ExternalServiceError("AI advice service is unavailable") from e

    content = response.choices[0].message.content if response.choices else ""
    content = (content or "").strip()
    if not content:
        raise ExternalServiceError("AI advice service returned an empty response")
    return "online", content
