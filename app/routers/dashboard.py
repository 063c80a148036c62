from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_owner_id
from app.schemas.common import Envelope
from app.schemas.dashboard import DashboardSummary
from app.services.dashboard import dashboard_service

router = APIRouter()

@router.get("/summary", response_model=Envelope[DashboardSummary])
def get_dashboard_summary(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Get today's delivery count, deliveries per status and total fuel/money saved.
    """
    return Envelope(data=dashboard_service.get_summary(db, owner_id))
