from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from goal_tracker.models import get_session

router = APIRouter(tags=["Health"])


@router.get("/health",
         summary="Health check",
         description="Checks the database connection and returns the application's health status.")
def health_check(session: Session = Depends(get_session)):
    """
    Health endpoint to check database connection.
    """
    try:
        session.exec(select(1))
        return {"status": "healthy"}
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Database connection failed")
