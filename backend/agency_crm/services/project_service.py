"""
Project Service - Business Logic for Projects
"""
from typing import Optional, List, Tuple
from decimal import Decimal
import logging

from sqlalchemy.orm import Session

from agency_crm.core.exceptions import NotFoundError
from agency_crm.models import Project, Invoice
from agency_crm.schemas import ProjectCreate, ProjectUpdate
from agency_crm.services.query_utils import apply_sort, paginate, column_values
from agency_crm.services.sync_service import ReferenceSyncService

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Session):
        self.db = db
        self.sync = ReferenceSyncService(db)

    def get_by_id(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def require(self, project_id: int) -> Project:
        project = self.get_by_id(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    def get_all(self, status: str = None, priority: str = None, page: int = 1,
                limit: int = 10, sort: str = None) -> Tuple[List[Project], int, dict]:
        query = self.db.query(Project)
        if status:
            query = query.filter(Project.status == status)
        if priority:
            query = query.filter(Project.priority == priority)
        query = apply_sort(query, Project, sort)
        return paginate(query, page, limit)

    def create(self, project_data: ProjectCreate) -> Project:
        project = Project(**column_values(project_data))
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        return project

    def update(self, project_id: int, project_data: ProjectUpdate) -> Optional[Project]:
        project = self.get_by_id(project_id)
        if not project:
            return None

        update_data = column_values(project_data, exclude_unset=True, nullable=("end_date", "description"))
        for key, value in update_data.items():
            setattr(project, key, value)

        self.db.commit()
        self.db.refresh(project)
        return project

    def update_payment_received(self, project_id: int, amount_received: Decimal) -> Optional[Project]:
        project = self.get_by_id(project_id)
        if not project:
            return None
        project.amount_received = amount_received
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete(self, project_id: int) -> bool:
        """Delete a project, removing the invoice it owns first"""
        project = self.get_by_id(project_id)
        if not project:
            return False

        if project.invoice_id:
            self.sync.delete_project_invoice(project)

        self.db.delete(project)
        self.db.commit()
        logger.info(f"Project {project_id} deleted")
        return True

    def get_invoice(self, project: Project) -> Optional[Invoice]:
        if not project.invoice_id:
            return None
        return self.db.get(Invoice, project.invoice_id)

    def get_financial_summary(self, project_id: int) -> Optional[dict]:
        project = self.get_by_id(project_id)
        if not project:
            return None

        total_budget = project.total_budget or Decimal("0")
        amount_received = project.amount_received or Decimal("0")
        completion = amount_received / total_budget * 100 if total_budget else Decimal("0")

        return {
            "project_id": project.id,
            "project_name": project.name,
            "total_budget": total_budget,
            "amount_received": amount_received,
            "amount_pending": project.amount_pending,
            "completion_percentage": completion,
            "invoice": self.get_invoice(project),
        }
