"""
Dashboard API Routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency_crm.core.database import get_db
from agency_crm.core.security import get_current_active_user
from agency_crm.schemas import DashboardStats
from agency_crm.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Get main dashboard statistics"""
    return DashboardService(db).get_stats()
