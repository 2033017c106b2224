"""
Reference Sync Service - keeps denormalized references between
projects, proposals and invoices in step

Secondary writes run after the primary entity is committed. Each one
commits on its own; a failure rolls back only that write, is logged and
is reported as False, never raised.
"""
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from agency_crm.models import Project, Proposal, Invoice, ProjectProposalStatus, ProposalStatus

logger = logging.getLogger(__name__)


PROPOSAL_TO_PROJECT_STATUS = {
    ProposalStatus.SENT.value: ProjectProposalStatus.SENT.value,
    ProposalStatus.ACCEPTED.value: ProjectProposalStatus.ACCEPTED.value,
    ProposalStatus.REJECTED.value: ProjectProposalStatus.REJECTED.value,
    ProposalStatus.NEGOTIATING.value: ProjectProposalStatus.NEEDS_REVISION.value,
}


def map_proposal_status(status) -> str:
    """Map a proposal status onto the status mirrored on its project"""
    value = getattr(status, "value", status)
    return PROPOSAL_TO_PROJECT_STATUS.get(value, ProjectProposalStatus.NOT_SENT.value)


class ReferenceSyncService:
    def __init__(self, db: Session):
        self.db = db

    def _get_project(self, project_id: int) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def _secondary_write(self, operation: str, primary: str, secondary: str,
                         write: Callable[[], bool]) -> bool:
        try:
            applied = write()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(
                f"Secondary write '{operation}' on {secondary} failed after {primary} was saved: {e}",
                exc_info=True,
                extra={"operation": operation, "primary": primary, "secondary": secondary},
            )
            return False

        if applied:
            logger.info(f"{secondary} updated by '{operation}' for {primary}")
        else:
            logger.warning(
                f"Secondary write '{operation}' skipped: {secondary} not found",
                extra={"operation": operation, "primary": primary, "secondary": secondary},
            )
        return applied

    # ==================== INVOICES ====================

    def attach_invoice(self, project_id: int, invoice: Invoice) -> bool:
        """Point the project at a newly created invoice"""
        invoice_id = invoice.id

        def write() -> bool:
            project = self._get_project(project_id)
            if not project:
                return False
            project.invoice_id = invoice_id
            return True

        return self._secondary_write(
            "attach_invoice", f"Invoice {invoice_id}", f"Project {project_id}", write
        )

    def record_project_payment(self, project_id: int, invoice: Invoice) -> bool:
        """Mirror the invoice's amount paid onto the project's amount received"""
        invoice_id = invoice.id
        amount_paid = invoice.amount_paid

        def write() -> bool:
            project = self._get_project(project_id)
            if not project:
                return False
            project.amount_received = amount_paid
            return True

        return self._secondary_write(
            "record_project_payment", f"Invoice {invoice_id}", f"Project {project_id}", write
        )

    def release_invoice(self, invoice: Invoice) -> None:
        """
        Clear the owning project's invoice reference ahead of an invoice delete.

        Runs before the primary delete, so errors propagate and abort it.
        """
        project = self._get_project(invoice.project_id)
        if project and project.invoice_id == invoice.id:
            project.invoice_id = None
            self.db.commit()
            logger.info(f"Project {project.id} released invoice {invoice.id}")

    def delete_project_invoice(self, project: Project) -> None:
        """
        Remove the invoice owned by a project ahead of the project delete.

        Errors propagate so the project is only deleted once the invoice is gone.
        """
        invoice = self.db.get(Invoice, project.invoice_id)
        if invoice:
            self.db.delete(invoice)
            self.db.commit()
            logger.info(f"Invoice {project.invoice_id} deleted with project {project.id}")

    # ==================== PROPOSALS ====================

    def write_proposal_summary(self, project_id: int, proposal: Proposal) -> bool:
        """
        Overwrite the project's proposal slot with this proposal's summary.

        The slot is last-write-wins: the id, mapped status and sent date are
        all written, so a later create, update or status change on an older
        proposal of the same project takes the slot back from a newer one.
        """
        proposal_id = proposal.id
        status = map_proposal_status(proposal.status)
        sent_date = proposal.sent_date

        def write() -> bool:
            project = self._get_project(project_id)
            if not project:
                return False
            project.proposal_id = proposal_id
            project.proposal_status = status
            project.proposal_sent_date = sent_date
            return True

        return self._secondary_write(
            "write_proposal_summary", f"Proposal {proposal_id}", f"Project {project_id}", write
        )

    def clear_proposal_summary(self, project_id: int, proposal_id: int) -> bool:
        """
        Empty the project's proposal slot, but only while it still holds this
        proposal; a slot since taken by another proposal is left alone.
        """
        def write() -> bool:
            project = self._get_project(project_id)
            if not project:
                return False
            if project.proposal_id == proposal_id:
                project.proposal_id = None
                project.proposal_status = ProjectProposalStatus.NOT_SENT.value
                project.proposal_sent_date = None
            return True

        return self._secondary_write(
            "clear_proposal_summary", f"Proposal {proposal_id}", f"Project {project_id}", write
        )
