from datetime import date
from decimal import Decimal
from io import BytesIO

from docx import Document
from fastapi.testclient import TestClient

from agency_crm.documents import render_invoice_pdf, render_proposal_docx
from agency_crm.schemas import InvoiceCreate, ProposalCreate
from agency_crm.services.invoice_service import InvoiceService
from agency_crm.services.proposal_service import ProposalService

from conftest import CLIENT


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_render_invoice_pdf(db, clock) -> None:
    invoice = InvoiceService(db, clock=clock).create(InvoiceCreate(
        client={**CLIENT, "address": "1 Market Street & Co\nSuite 5"},
        items=[
            {"description": "Design <phase 1>", "quantity": 2, "unit_price": "300", "tax_rate": "18"},
            {"description": "Hosting", "quantity": 1, "unit_price": "120"},
        ],
        payments=[{"method": "cheque", "amount": "200", "transaction_id": "CHQ-1", "cheque_number": "000123"}],
        due_date=date(2099, 12, 31),
        notes="Thanks for your business",
        terms="Net 30",
    ))

    content = render_invoice_pdf(invoice)

    assert content.startswith(b"%PDF")
    assert len(content) > 1000


def test_render_proposal_docx(db, clock) -> None:
    proposal = ProposalService(db, clock=clock).create(ProposalCreate(
        client_details={"name": "Globex", "email": "pm@globex.example.com", "phone": "+1 555 0102"},
        title="Mobile App Proposal",
        description="A cross-platform app",
        scope="Design and build\nLaunch support",
        deliverables=["Wireframes", "iOS app"],
        timeline="12 weeks",
        budget_estimate=Decimal("5000"),
        terms="50% upfront",
    ))

    content = render_proposal_docx(proposal)

    document = Document(BytesIO(content))
    text = "\n".join(p.text for p in document.paragraphs)
    assert "Mobile App Proposal" in text
    assert "iOS app" in text
    assert "INR 5,000.00" in text
    assert "50% upfront" in text
