"""
Proposal Service - Business Logic for Proposals and their project link
"""
from typing import Optional, List, Tuple
import logging

from sqlalchemy.orm import Session

from agency_crm.core.clock import Clock, system_clock
from agency_crm.core.exceptions import NotFoundError
from agency_crm.models import Project, Proposal, ProposalStatus
from agency_crm.schemas import ProposalCreate, ProposalUpdate, ProposalStatusEnum
from agency_crm.services.project_service import ProjectService
from agency_crm.services.query_utils import apply_sort, paginate, column_values
from agency_crm.services.sync_service import ReferenceSyncService

logger = logging.getLogger(__name__)


class ProposalService:
    def __init__(self, db: Session, clock: Clock = None):
        self.db = db
        self.clock = clock or system_clock
        self.projects = ProjectService(db)
        self.sync = ReferenceSyncService(db)

    def get_by_id(self, proposal_id: int) -> Optional[Proposal]:
        return self.db.query(Proposal).filter(Proposal.id == proposal_id).first()

    def require(self, proposal_id: int) -> Proposal:
        proposal = self.get_by_id(proposal_id)
        if not proposal:
            raise NotFoundError("Proposal", proposal_id)
        return proposal

    def get_all(self, status: str = None, project_id: int = None, page: int = 1,
                limit: int = 10, sort: str = None) -> Tuple[List[Proposal], int, dict]:
        query = self.db.query(Proposal)
        if status:
            query = query.filter(Proposal.status == status)
        if project_id:
            query = query.filter(Proposal.project_id == project_id)
        query = apply_sort(query, Proposal, sort)
        return paginate(query, page, limit)

    def _stamp_sent_date(self, proposal: Proposal) -> bool:
        """Set sent_date on the first move into 'sent'; it is never overwritten"""
        if proposal.status == ProposalStatus.SENT.value and proposal.sent_date is None:
            proposal.sent_date = self.clock.now()
            return True
        return False

    def create(self, proposal_data: ProposalCreate) -> Proposal:
        if proposal_data.project_id is not None:
            self.projects.require(proposal_data.project_id)

        proposal = Proposal(**column_values(proposal_data))
        self._stamp_sent_date(proposal)
        self.db.add(proposal)
        self.db.commit()
        self.db.refresh(proposal)

        if proposal.project_id:
            self.sync.write_proposal_summary(proposal.project_id, proposal)

        return proposal

    def update(self, proposal_id: int, proposal_data: ProposalUpdate) -> Optional[Proposal]:
        proposal = self.get_by_id(proposal_id)
        if not proposal:
            return None

        old_project_id = proposal.project_id
        old_status = proposal.status
        old_sent_date = proposal.sent_date

        update_data = column_values(
            proposal_data, exclude_unset=True, nullable=("project_id", "terms", "notes")
        )
        new_project_id = update_data.get("project_id", old_project_id)
        if new_project_id is not None and new_project_id != old_project_id:
            self.projects.require(new_project_id)

        for key, value in update_data.items():
            setattr(proposal, key, value)
        self._stamp_sent_date(proposal)

        self.db.commit()
        self.db.refresh(proposal)

        project_changed = old_project_id != proposal.project_id

        if old_project_id and project_changed:
            self.sync.clear_proposal_summary(old_project_id, proposal.id)

        if proposal.project_id:
            if project_changed:
                self.sync.write_proposal_summary(proposal.project_id, proposal)
            elif proposal.status != old_status or proposal.sent_date != old_sent_date:
                self.sync.write_proposal_summary(proposal.project_id, proposal)

        return proposal

    def link_to_project(self, proposal_id: int, project_id: int) -> Tuple[Proposal, Project]:
        """Attach a proposal to a project and claim the project's proposal slot"""
        proposal = self.require(proposal_id)
        project = self.projects.require(project_id)

        old_project_id = proposal.project_id
        proposal.project_id = project.id
        self.db.commit()
        self.db.refresh(proposal)

        if old_project_id and old_project_id != project_id:
            self.sync.clear_proposal_summary(old_project_id, proposal.id)
        self.sync.write_proposal_summary(project_id, proposal)

        self.db.refresh(project)
        return proposal, project

    def change_status(self, proposal_id: int, status: ProposalStatusEnum) -> Optional[Proposal]:
        proposal = self.get_by_id(proposal_id)
        if not proposal:
            return None

        proposal.status = status.value if isinstance(status, ProposalStatusEnum) else status
        self._stamp_sent_date(proposal)
        self.db.commit()
        self.db.refresh(proposal)

        if proposal.project_id:
            self.sync.write_proposal_summary(proposal.project_id, proposal)

        return proposal

    def delete(self, proposal_id: int) -> bool:
        """Delete a proposal; the project's summary of it is left in place"""
        proposal = self.get_by_id(proposal_id)
        if not proposal:
            return False
        self.db.delete(proposal)
        self.db.commit()
        logger.info(f"Proposal {proposal_id} deleted")
        return True
