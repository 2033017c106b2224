"""
Project API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from agency_crm.core.database import get_db
from agency_crm.core.security import get_current_active_user
from agency_crm.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectWithInvoice, ProjectFinancialSummary,
    PaymentReceivedUpdate, InvoiceSummary, ProjectStatusEnum, ProjectPriorityEnum,
    MessageResponse, Page
)
from agency_crm.services.project_service import ProjectService
from agency_crm.services.query_utils import page_response

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("", response_model=Page[ProjectResponse])
async def list_projects(
    status: Optional[ProjectStatusEnum] = None,
    priority: Optional[ProjectPriorityEnum] = None,
    page: int = 1,
    limit: int = 10,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """List projects, optionally filtered by status and priority"""
    project_service = ProjectService(db)
    try:
        return page_response(*project_service.get_all(
            status.value if status else None,
            priority.value if priority else None,
            page, limit, sort
        ))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    return ProjectService(db).create(project_data)


@router.get("/{project_id}", response_model=ProjectWithInvoice)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Get a project together with its invoice summary"""
    project_service = ProjectService(db)
    project = project_service.require(project_id)

    response = ProjectWithInvoice.model_validate(project)
    invoice = project_service.get_invoice(project)
    if invoice:
        response.invoice = InvoiceSummary.model_validate(invoice)
    return response


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    project = ProjectService(db).update(project_id, project_data)
    if not project:
        raise HTTPException(status_code=404, detail=f"Project not found with id {project_id}")
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Delete a project and the invoice it owns"""
    if not ProjectService(db).delete(project_id):
        raise HTTPException(status_code=404, detail=f"Project not found with id {project_id}")
    return {"message": "Project deleted successfully"}


@router.get("/{project_id}/financial", response_model=ProjectFinancialSummary)
async def get_project_financial_summary(
    project_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    summary = ProjectService(db).get_financial_summary(project_id)
    if not summary:
        raise HTTPException(status_code=404, detail=f"Project not found with id {project_id}")
    return summary


@router.put("/{project_id}/payment", response_model=ProjectResponse)
async def update_payment_received(
    project_id: int,
    payment_data: PaymentReceivedUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Set the amount received on a project"""
    project = ProjectService(db).update_payment_received(project_id, payment_data.amount_received)
    if not project:
        raise HTTPException(status_code=404, detail=f"Project not found with id {project_id}")
    return project
