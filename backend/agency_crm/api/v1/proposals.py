"""
Proposal API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional

from agency_crm.core.database import get_db
from agency_crm.core.security import get_current_active_user
from agency_crm.documents import render_proposal_docx
from agency_crm.schemas import (
    ProposalCreate, ProposalUpdate, ProposalResponse, ProposalStatusChange, ProposalLinkResponse,
    ProposalStatusEnum, MessageResponse, Page
)
from agency_crm.services.proposal_service import ProposalService
from agency_crm.services.query_utils import page_response

router = APIRouter(prefix="/proposals", tags=["Proposals"])

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _not_found(proposal_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Proposal not found with id {proposal_id}")


@router.get("", response_model=Page[ProposalResponse])
async def list_proposals(
    status: Optional[ProposalStatusEnum] = None,
    project_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    proposal_service = ProposalService(db)
    try:
        return page_response(*proposal_service.get_all(
            status.value if status else None, project_id, page, limit, sort
        ))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    proposal_data: ProposalCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Create a proposal and mirror it onto its project"""
    return ProposalService(db).create(proposal_data)


@router.get("/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    proposal = ProposalService(db).get_by_id(proposal_id)
    if not proposal:
        raise _not_found(proposal_id)
    return proposal


@router.put("/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: int,
    proposal_data: ProposalUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    proposal = ProposalService(db).update(proposal_id, proposal_data)
    if not proposal:
        raise _not_found(proposal_id)
    return proposal


@router.delete("/{proposal_id}", response_model=MessageResponse)
async def delete_proposal(
    proposal_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    if not ProposalService(db).delete(proposal_id):
        raise _not_found(proposal_id)
    return {"message": "Proposal deleted successfully"}


@router.post("/{proposal_id}/link-project/{project_id}", response_model=ProposalLinkResponse)
async def link_proposal_to_project(
    proposal_id: int,
    project_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Link a proposal to a project"""
    proposal, project = ProposalService(db).link_to_project(proposal_id, project_id)
    return {
        "message": "Proposal linked to project successfully",
        "proposal": proposal,
        "project": project,
    }


@router.patch("/{proposal_id}/status", response_model=ProposalResponse)
async def change_proposal_status(
    proposal_id: int,
    status_data: ProposalStatusChange,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    proposal = ProposalService(db).change_status(proposal_id, status_data.status)
    if not proposal:
        raise _not_found(proposal_id)
    return proposal


@router.get("/{proposal_id}/docx")
async def download_proposal_docx(
    proposal_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Download the proposal as a Word document"""
    proposal = ProposalService(db).get_by_id(proposal_id)
    if not proposal:
        raise _not_found(proposal_id)

    return Response(
        content=render_proposal_docx(proposal),
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="proposal-{proposal.id}.docx"'}
    )
