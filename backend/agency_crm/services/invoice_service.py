"""
Invoice Service - Invoices, line items and payments
"""
from typing import Optional, List, Tuple, Iterable
import logging

from sqlalchemy.orm import Session

from agency_crm.core.clock import Clock, system_clock
from agency_crm.core.config import settings
from agency_crm.core.exceptions import NotFoundError
from agency_crm.core.identifiers import InvoiceNumberGenerator, default_number_generator
from agency_crm.models import Invoice, InvoiceItem, InvoiceStatus
from agency_crm.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceFromProject, LineItemCreate, Currency
)
from agency_crm.services.billing import append_payment, recompute_invoice_state, is_overdue
from agency_crm.services.project_service import ProjectService
from agency_crm.services.query_utils import apply_sort, paginate, column_values
from agency_crm.services.sync_service import ReferenceSyncService

logger = logging.getLogger(__name__)

ADDRESS_NOT_PROVIDED = "Address not provided"


class InvoiceService:
    def __init__(self, db: Session, clock: Clock = None,
                 number_generator: InvoiceNumberGenerator = None):
        self.db = db
        self.clock = clock or system_clock
        self.number_generator = number_generator or default_number_generator
        self.projects = ProjectService(db)
        self.sync = ReferenceSyncService(db)

    def get_by_id(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def require(self, invoice_id: int) -> Invoice:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def get_all(self, status: str = None, project_id: int = None, page: int = 1,
                limit: int = 10, sort: str = None) -> Tuple[List[Invoice], int, dict]:
        query = self.db.query(Invoice)
        if status:
            query = query.filter(Invoice.status == status)
        if project_id:
            query = query.filter(Invoice.project_id == project_id)
        query = apply_sort(query, Invoice, sort)
        return paginate(query, page, limit)

    def recompute(self, invoice: Invoice) -> Invoice:
        return recompute_invoice_state(invoice, self.clock.now(), self.number_generator)

    def _build_items(self, items: Iterable[LineItemCreate]) -> List[InvoiceItem]:
        return [
            InvoiceItem(position=position, **column_values(item))
            for position, item in enumerate(items)
        ]

    def _check_number_available(self, invoice_number: Optional[str]):
        if not invoice_number:
            return
        exists = self.db.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first()
        if exists:
            raise ValueError(f"Invoice number {invoice_number} already exists")

    def _save_new(self, invoice: Invoice, payments: Iterable) -> Invoice:
        now = self.clock.now()
        for payment in payments:
            append_payment(invoice, payment, paid_at=now)
        if invoice.issued_date is None:
            invoice.issued_date = now

        self.recompute(invoice)
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number} created with status {invoice.status}")

        if invoice.project_id:
            self.sync.attach_invoice(invoice.project_id, invoice)

        return invoice

    def create(self, invoice_data: InvoiceCreate) -> Invoice:
        if invoice_data.project_id is not None:
            self.projects.require(invoice_data.project_id)
        self._check_number_available(invoice_data.invoice_number)

        values = column_values(invoice_data)
        values.pop("items")
        values.pop("payments")
        invoice = Invoice(**values)
        invoice.items = self._build_items(invoice_data.items)
        return self._save_new(invoice, invoice_data.payments)

    def generate_from_project(self, project_id: int, invoice_data: InvoiceFromProject) -> Invoice:
        """Create an invoice for a project, filling gaps from the project itself"""
        project = self.projects.require(project_id)

        project_client = project.client or {}
        overrides = invoice_data.client.model_dump(exclude_none=True) if invoice_data.client else {}
        client = {
            "name": overrides.get("name") or project_client.get("name"),
            "email": overrides.get("email") or project_client.get("email"),
            "phone": overrides.get("phone") or project_client.get("phone"),
            "address": overrides.get("address") or ADDRESS_NOT_PROVIDED,
            "agency_name": overrides.get("agency_name"),
            "registration_number": overrides.get("registration_number"),
        }

        items = invoice_data.items or [
            LineItemCreate(
                description=f"Payment for project: {project.name}",
                quantity=1,
                unit_price=project.total_budget,
            )
        ]

        invoice = Invoice(
            project_id=project.id,
            currency=(invoice_data.currency or Currency()).model_dump(),
            agency=invoice_data.agency.model_dump() if invoice_data.agency else settings.default_agency,
            client=client,
            status=invoice_data.status,
            discount=invoice_data.discount,
            issued_date=invoice_data.issued_date,
            due_date=invoice_data.due_date,
            notes=invoice_data.notes,
            terms=invoice_data.terms,
        )
        invoice.items = self._build_items(items)
        return self._save_new(invoice, invoice_data.payments)

    def update(self, invoice_id: int, invoice_data: InvoiceUpdate) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            return None
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ValueError("Cannot update a cancelled invoice")

        update_data = column_values(invoice_data, exclude_unset=True, nullable=("notes", "terms"))
        if "items" in update_data:
            update_data.pop("items")
            invoice.items = self._build_items(invoice_data.items)

        for key, value in update_data.items():
            setattr(invoice, key, value)

        self.recompute(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def add_payment(self, invoice_id: int, payment) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            return None
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ValueError("Cannot add a payment to a cancelled invoice")

        append_payment(invoice, payment, paid_at=self.clock.now())
        self.recompute(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(
            f"Payment recorded on invoice {invoice.invoice_number}: "
            f"paid {invoice.amount_paid}, due {invoice.amount_due}, status {invoice.status}"
        )

        if invoice.project_id:
            self.sync.record_project_payment(invoice.project_id, invoice)

        return invoice

    def cancel(self, invoice_id: int) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            return None
        invoice.status = InvoiceStatus.CANCELLED.value
        self.recompute(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def delete(self, invoice_id: int) -> bool:
        invoice = self.get_by_id(invoice_id)
        if not invoice:
            return False

        if invoice.project_id:
            self.sync.release_invoice(invoice)

        self.db.delete(invoice)
        self.db.commit()
        logger.info(f"Invoice {invoice_id} deleted")
        return True

    def get_payment_status(self, invoice: Invoice) -> dict:
        return {
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "total_amount": invoice.total_amount,
            "amount_paid": invoice.amount_paid,
            "amount_due": invoice.amount_due,
            "payment_percentage": invoice.payment_percentage,
            "is_overdue": is_overdue(invoice, self.clock.now()),
            "due_date": invoice.due_date,
        }
