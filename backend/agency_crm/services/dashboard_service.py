"""
Dashboard Service - Headline statistics
"""
from typing import Dict
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session

from agency_crm.models import Project, Invoice, InvoiceStatus

# Invoices still waiting on money
OPEN_INVOICE_STATUSES = [
    InvoiceStatus.PENDING.value,
    InvoiceStatus.PARTIALLY_PAID.value,
    InvoiceStatus.OVERDUE.value,
]


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def get_stats(self) -> Dict:
        total_projects = self.db.query(func.count(Project.id)).scalar() or 0

        total_revenue = self.db.query(func.sum(Project.amount_received)).scalar() or Decimal("0")

        pending_invoices = self.db.query(func.count(Invoice.id)).filter(
            Invoice.status.in_(OPEN_INVOICE_STATUSES)
        ).scalar() or 0

        return {
            "total_projects": total_projects,
            "total_revenue": total_revenue,
            "pending_invoices": pending_invoices,
        }
