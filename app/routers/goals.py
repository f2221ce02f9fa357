import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.core.errors import NotFoundError, ValidationError
from app.models.goal import GoalContribution, GoalCreate, GoalInDB, GoalPublic, GoalStatus, GoalUpdate
from app.routers.deps import get_connections, get_current_user_id, get_engine, get_store, ok
from app.utils.analytics_engine import AnalyticsEngine
from app.utils.connections import ConnectionRegistry
from app.utils.notifier import deliver, goal_achieved

router = APIRouter()
logger = logging.getLogger(__name__)


def _load(store, user_id: str, goal_id: str) -> GoalInDB:
    record = store.get_goal(user_id, goal_id)
    if not record:
        raise NotFoundError("Goal not found")
    return GoalInDB(**record)


def _save(store, goal: GoalInDB, previous_status: str, connections: ConnectionRegistry) -> dict:
    fields = goal.model_dump(mode="json", exclude={"user_id", "goal_id", "created_at"})
    updated = store.update_goal(goal.user_id, goal.goal_id, fields)
    if not updated:
        raise NotFoundError("Goal not found")
    if previous_status != "completed" and goal.status == "completed":
        logger.info(f"Goal {goal.goal_id} completed for user {goal.user_id}")
        deliver(store, goal_achieved(goal.user_id, goal), connections)
    return GoalPublic.from_goal(goal).model_dump(mode="json")


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: GoalCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    goal_db = GoalInDB(user_id=user_id, **goal.model_dump())
    store.put_goal(goal_db.model_dump(mode="json"))
    return ok(GoalPublic.from_goal(goal_db).model_dump(mode="json"), "Goal created successfully")


@router.get("/")
def list_goals(
    status: Optional[GoalStatus] = None,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    goals = [GoalInDB(**record) for record in store.list_goals(user_id)]
    if status:
        goals = [g for g in goals if g.status == status]
    goals.sort(key=lambda g: g.target_date)
    return ok([GoalPublic.from_goal(g).model_dump(mode="json") for g in goals])


@router.get("/stats")
def goal_stats(
    user_id: str = Depends(get_current_user_id),
    engine: AnalyticsEngine = Depends(get_engine),
):
    return ok(engine.goal_progress(user_id)["summary"])


@router.get("/{goal_id}")
def get_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    return ok(GoalPublic.from_goal(_load(store, user_id, goal_id)).model_dump(mode="json"))


@router.put("/{goal_id}")
def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    connections: ConnectionRegistry = Depends(get_connections),
):
    updates = goal_update.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")

    goal = _load(store, user_id, goal_id)
    previous_status = goal.status
    # Re-validate so progress and status follow the new amounts.
    goal = GoalInDB(**{**goal.model_dump(), **updates})
    return ok(_save(store, goal, previous_status, connections), "Goal updated successfully")


@router.post("/{goal_id}/contribute")
def contribute_to_goal(
    goal_id: str,
    contribution: GoalContribution,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
    connections: ConnectionRegistry = Depends(get_connections),
):
    goal = _load(store, user_id, goal_id)
    if goal.status == "cancelled":
        raise ValidationError("Cannot contribute to a cancelled goal")
    previous_status = goal.status
    goal.contribute(contribution.amount)
    return ok(_save(store, goal, previous_status, connections), "Contribution added successfully")


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    if not store.delete_goal(user_id, goal_id):
        raise NotFoundError("Goal not found")
    return ok(message="Goal deleted successfully")
