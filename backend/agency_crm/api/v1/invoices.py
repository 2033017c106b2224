"""
Invoice API Routes - Invoices, payments and PDF export
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional

from agency_crm.core.database import get_db
from agency_crm.core.security import get_current_active_user
from agency_crm.documents import render_invoice_pdf
from agency_crm.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceFromProject, InvoiceResponse, InvoicePaymentStatus,
    InvoiceStatusEnum, PaymentRecordInput, MessageResponse, Page
)
from agency_crm.services.invoice_service import InvoiceService
from agency_crm.services.query_utils import page_response

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def _not_found(invoice_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Invoice not found with id {invoice_id}")


@router.get("", response_model=Page[InvoiceResponse])
async def list_invoices(
    status: Optional[InvoiceStatusEnum] = None,
    project_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """List invoices, optionally filtered by status and project"""
    invoice_service = InvoiceService(db)
    try:
        return page_response(*invoice_service.get_all(
            status.value if status else None, project_id, page, limit, sort
        ))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Create an invoice; totals, status and number are derived"""
    try:
        return InvoiceService(db).create(invoice_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/project/{project_id}", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def generate_invoice_from_project(
    project_id: int,
    invoice_data: Optional[InvoiceFromProject] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Generate an invoice from a project, defaulting client and items from it"""
    try:
        return InvoiceService(db).generate_from_project(project_id, invoice_data or InvoiceFromProject())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    invoice = InvoiceService(db).get_by_id(invoice_id)
    if not invoice:
        raise _not_found(invoice_id)
    return invoice


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Update an invoice; supplied items replace the existing ones"""
    try:
        invoice = InvoiceService(db).update(invoice_id, invoice_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not invoice:
        raise _not_found(invoice_id)
    return invoice


@router.delete("/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    if not InvoiceService(db).delete(invoice_id):
        raise _not_found(invoice_id)
    return {"message": "Invoice deleted successfully"}


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse)
async def add_payment(
    invoice_id: int,
    payment: PaymentRecordInput,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Record a payment against an invoice"""
    try:
        invoice = InvoiceService(db).add_payment(invoice_id, payment.root)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not invoice:
        raise _not_found(invoice_id)
    return invoice


@router.get("/{invoice_id}/status", response_model=InvoicePaymentStatus)
async def get_payment_status(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    invoice_service = InvoiceService(db)
    invoice = invoice_service.get_by_id(invoice_id)
    if not invoice:
        raise _not_found(invoice_id)
    return invoice_service.get_payment_status(invoice)


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    invoice = InvoiceService(db).cancel(invoice_id)
    if not invoice:
        raise _not_found(invoice_id)
    return invoice


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Download the invoice as a PDF"""
    invoice = InvoiceService(db).get_by_id(invoice_id)
    if not invoice:
        raise _not_found(invoice_id)

    return Response(
        content=render_invoice_pdf(invoice),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="invoice-{invoice.invoice_number}.pdf"'}
    )
