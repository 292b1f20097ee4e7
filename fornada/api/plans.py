"""Plan API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fornada.database import get_db
from fornada.models import Plan
from fornada.schemas.plan import PlanResponse

router = APIRouter(prefix="/api/v1/plans", tags=["plans"])


@router.get("", response_model=list[PlanResponse])
async def list_plans(db: Annotated[Session, Depends(get_db)]):
    """List active plans."""
    return db.query(Plan).filter(Plan.is_active.is_(True)).order_by(Plan.id).all()
