from fastapi import APIRouter, Body, Path, Depends, status
from sqlmodel import Session, select
from datetime import datetime
from typing import List

from goal_tracker.auth import assert_owner, get_current_user
from goal_tracker.config import logger
from goal_tracker.errors import BadRequest, NotFound
from goal_tracker.models import Goal, GoalCreate, GoalUpdate, User, get_session

router = APIRouter(prefix="/api/goals", tags=["Goals"])


def get_goal_or_404(session: Session, goal_id: str) -> Goal:
    goal = session.get(Goal, goal_id)
    if not goal:
        raise NotFound("Goal not found")
    return goal


@router.get("",
         summary="List goals",
         description="Retrieves all goals owned by the authenticated user.",
         response_model=List[Goal])
def list_goals(current_user: User = Depends(get_current_user),
               session: Session = Depends(get_session)):
    goals = session.exec(
        select(Goal)
        .where(Goal.user_id == current_user.id)
        .order_by(Goal.created_at)
    ).all()
    return goals


@router.post("",
          summary="Create a goal",
          description="Creates a goal owned by the authenticated user.",
          status_code=status.HTTP_201_CREATED)
def create_goal(goal_data: GoalCreate = Body(..., description="Name and description of the goal"),
                current_user: User = Depends(get_current_user),
                session: Session = Depends(get_session)):
    if not goal_data.name or not goal_data.description:
        raise BadRequest("Please fill in all fields")

    goal = Goal(
        name=goal_data.name,
        description=goal_data.description,
        user_id=current_user.id
    )
    session.add(goal)
    session.commit()
    session.refresh(goal)
    logger.info(f"Created goal {goal.id} for user {current_user.id}")

    return {"success": True, "data": goal, "message": "Goal created"}


@router.put("/{goal_id}",
         summary="Update a goal",
         description="Updates name, description and completion of a goal owned by the authenticated user.")
def update_goal(goal_id: str = Path(..., description="Unique identifier of the goal to update"),
                goal_data: GoalUpdate = Body(...),
                current_user: User = Depends(get_current_user),
                session: Session = Depends(get_session)):
    """
    Update a goal. The goal is loaded and its ownership verified before
    anything is written.
    """
    if not goal_data.name or not goal_data.description or goal_data.completed is None:
        raise BadRequest("Please fill in all fields")

    goal = get_goal_or_404(session, goal_id)
    assert_owner(goal.user_id, current_user.id)

    goal.name = goal_data.name
    goal.description = goal_data.description
    goal.completed = goal_data.completed
    goal.updated_at = datetime.utcnow()

    session.add(goal)
    session.commit()
    session.refresh(goal)

    return {"success": True, "data": goal, "message": "Goal updated"}


@router.delete("/{goal_id}",
            summary="Delete goal",
            description="Deletes a goal owned by the authenticated user.")
def delete_goal(goal_id: str = Path(..., description="Unique identifier of the goal to delete"),
                current_user: User = Depends(get_current_user),
                session: Session = Depends(get_session)):
    goal = get_goal_or_404(session, goal_id)
    assert_owner(goal.user_id, current_user.id)

    session.delete(goal)
    session.commit()
    logger.info(f"Deleted goal {goal_id}")

    return {"success": True, "message": "Goal deleted"}
