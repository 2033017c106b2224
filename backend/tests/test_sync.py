from datetime import date, datetime
from decimal import Decimal
import logging

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from agency_crm.core.clock import FixedClock
from agency_crm.models import Invoice, Project, Proposal
from agency_crm.schemas import InvoiceCreate, ProposalCreate, ProposalUpdate
from agency_crm.services.invoice_service import InvoiceService
from agency_crm.services.project_service import ProjectService
from agency_crm.services.proposal_service import ProposalService
from agency_crm.services.sync_service import ReferenceSyncService, map_proposal_status

from conftest import CLIENT, NOW


def proposal_data(**overrides) -> ProposalCreate:
    values = {
        "client_details": {"name": "Globex", "email": "pm@globex.example.com", "phone": "+1 555 0102"},
        "title": "Mobile App Proposal",
        "description": "A cross-platform app",
        "scope": "Design and build",
        "deliverables": ["Wireframes", "iOS app", "Android app"],
        "timeline": "12 weeks",
        "budget_estimate": Decimal("5000"),
    }
    values.update(overrides)
    return ProposalCreate(**values)


def invoice_data(**overrides) -> InvoiceCreate:
    values = {
        "client": dict(CLIENT),
        "items": [{"description": "Milestone 1", "quantity": 1, "unit_price": "1000"}],
        "due_date": date(2099, 12, 31),
    }
    values.update(overrides)
    return InvoiceCreate(**values)


def fail_project_lookup(monkeypatch):
    def broken(self, project_id):
        raise OperationalError("SELECT projects", {}, Exception("storage unavailable"))
    monkeypatch.setattr(ReferenceSyncService, "_get_project", broken)


@pytest.mark.parametrize("status, expected", [
    ("sent", "sent"),
    ("accepted", "accepted"),
    ("rejected", "rejected"),
    ("negotiating", "needs_revision"),
    ("draft", "not_sent"),
])
def test_map_proposal_status(status, expected):
    assert map_proposal_status(status) == expected


# ==================== PROPOSALS ====================

def test_sent_proposal_is_mirrored_onto_project(db, project, clock):
    proposal = ProposalService(db, clock=clock).create(proposal_data(project_id=project.id, status="sent"))

    assert proposal.sent_date == NOW
    db.refresh(project)
    assert project.proposal == {"id": proposal.id, "status": "sent", "sent_date": NOW}


def test_proposal_survives_failed_project_write(db, project, clock, monkeypatch, caplog):
    fail_project_lookup(monkeypatch)
    caplog.set_level(logging.WARNING, logger="agency_crm.services.sync_service")

    proposal = ProposalService(db, clock=clock).create(proposal_data(project_id=project.id, status="sent"))

    assert db.get(Proposal, proposal.id) is not None
    assert proposal.status == "sent"
    db.refresh(project)
    assert project.proposal_id is None

    failures = [r for r in caplog.records if getattr(r, "operation", None) == "write_proposal_summary"]
    assert len(failures) == 1
    assert failures[0].levelno == logging.WARNING
    assert failures[0].exc_info is not None
    assert failures[0].secondary == f"Project {project.id}"


def test_moving_proposal_clears_old_project_and_fills_new(db, project, other_project, clock):
    service = ProposalService(db, clock=clock)
    proposal = service.create(proposal_data(project_id=project.id, status="sent"))

    service.update(proposal.id, ProposalUpdate(project_id=other_project.id))

    db.refresh(project)
    db.refresh(other_project)
    assert project.proposal_id is None
    assert project.proposal_status == "not_sent"
    assert other_project.proposal == {"id": proposal.id, "status": "sent", "sent_date": NOW}


def test_moving_proposal_leaves_slot_taken_by_another_proposal(db, project, other_project, clock):
    service = ProposalService(db, clock=clock)
    first = service.create(proposal_data(project_id=project.id))
    second = service.create(proposal_data(project_id=project.id, title="Revised Proposal"))

    service.update(first.id, ProposalUpdate(project_id=other_project.id))

    db.refresh(project)
    assert project.proposal_id == second.id


def test_unlinking_proposal_clears_project_slot(db, project, clock):
    service = ProposalService(db, clock=clock)
    proposal = service.create(proposal_data(project_id=project.id, status="accepted"))

    service.update(proposal.id, ProposalUpdate(project_id=None))

    db.refresh(project)
    assert proposal.project_id is None
    assert project.proposal is None


def test_status_change_on_same_project_is_propagated(db, project, clock):
    service = ProposalService(db, clock=clock)
    proposal = service.create(proposal_data(project_id=project.id))
    db.refresh(project)
    assert project.proposal_status == "not_sent"

    service.update(proposal.id, ProposalUpdate(status="negotiating"))
    db.refresh(project)
    assert project.proposal_status == "needs_revision"

    service.change_status(proposal.id, "sent")
    db.refresh(project)
    assert project.proposal_status == "sent"
    assert project.proposal_sent_date == NOW


def test_status_change_on_older_proposal_reclaims_slot(db, project, clock):
    service = ProposalService(db, clock=clock)
    older = service.create(proposal_data(project_id=project.id, title="First draft"))
    newer = service.create(proposal_data(project_id=project.id, title="Second draft"))
    db.refresh(project)
    assert project.proposal_id == newer.id

    service.change_status(older.id, "rejected")
    db.refresh(project)

    assert project.proposal_id == older.id
    assert project.proposal_status == "rejected"


def test_sent_date_is_stamped_once(db, project):
    proposal = ProposalService(db, clock=FixedClock(NOW)).create(proposal_data(project_id=project.id))
    ProposalService(db, clock=FixedClock(NOW)).change_status(proposal.id, "sent")
    ProposalService(db, clock=FixedClock(datetime(2026, 5, 1))).change_status(proposal.id, "negotiating")
    ProposalService(db, clock=FixedClock(datetime(2026, 5, 2))).change_status(proposal.id, "sent")

    db.refresh(proposal)
    assert proposal.sent_date == NOW


def test_link_to_project_claims_slot(db, project, clock):
    service = ProposalService(db, clock=clock)
    proposal = service.create(proposal_data(status="sent"))

    linked, linked_project = service.link_to_project(proposal.id, project.id)

    assert linked.project_id == project.id
    assert linked_project.proposal["id"] == proposal.id
    assert linked_project.proposal["status"] == "sent"


def test_deleting_proposal_does_not_touch_project(db, project, clock):
    service = ProposalService(db, clock=clock)
    proposal = service.create(proposal_data(project_id=project.id, status="sent"))

    assert service.delete(proposal.id)

    db.refresh(project)
    assert project.proposal_id == proposal.id


# ==================== INVOICES ====================

def test_invoice_creation_links_project(db, project, clock):
    invoice = InvoiceService(db, clock=clock).create(invoice_data(project_id=project.id))

    db.refresh(project)
    assert project.invoice_id == invoice.id


def test_invoice_survives_failed_project_link(db, project, clock, monkeypatch):
    fail_project_lookup(monkeypatch)

    invoice = InvoiceService(db, clock=clock).create(invoice_data(project_id=project.id))

    assert db.get(Invoice, invoice.id) is not None
    db.refresh(project)
    assert project.invoice_id is None


def test_payment_updates_project_amount_received(db, project, clock):
    service = InvoiceService(db, clock=clock)
    invoice = service.create(invoice_data(project_id=project.id, status="pending"))

    service.add_payment(invoice.id, {"method": "paypal", "amount": "250", "transaction_id": "PP-1"})
    service.add_payment(invoice.id, {"method": "cash", "amount": "150"})

    db.refresh(project)
    assert project.amount_received == Decimal("400")
    assert project.amount_pending == Decimal("4600")


def test_payment_is_kept_when_project_update_fails(db, project, clock, monkeypatch):
    service = InvoiceService(db, clock=clock)
    invoice = service.create(invoice_data(project_id=project.id, status="pending"))

    fail_project_lookup(monkeypatch)
    invoice = service.add_payment(invoice.id, {"method": "cash", "amount": "300"})

    assert invoice.amount_paid == Decimal("300")
    assert invoice.status == "partially_paid"
    db.refresh(project)
    assert project.amount_received == Decimal("0")


def test_deleting_invoice_clears_project_reference(db, project, clock):
    service = InvoiceService(db, clock=clock)
    invoice = service.create(invoice_data(project_id=project.id))

    assert service.delete(invoice.id)

    db.refresh(project)
    assert project.invoice_id is None


def test_deleting_older_invoice_keeps_newer_reference(db, project, clock):
    service = InvoiceService(db, clock=clock)
    older = service.create(invoice_data(project_id=project.id, invoice_number="EGMA-INV-0001"))
    newer = service.create(invoice_data(project_id=project.id, invoice_number="EGMA-INV-0002"))

    service.delete(older.id)

    db.refresh(project)
    assert project.invoice_id == newer.id


# ==================== PROJECTS ====================

def test_deleting_project_deletes_its_invoice(db, project, clock):
    invoice = InvoiceService(db, clock=clock).create(invoice_data(project_id=project.id))
    invoice_id, project_id = invoice.id, project.id

    assert ProjectService(db).delete(project_id)

    assert db.get(Invoice, invoice_id) is None
    assert db.get(Project, project_id) is None


def test_project_is_kept_when_invoice_delete_fails(db, project, clock, monkeypatch):
    InvoiceService(db, clock=clock).create(invoice_data(project_id=project.id))
    project_id = project.id

    def broken(self, project):
        raise OperationalError("DELETE FROM invoices", {}, Exception("storage unavailable"))
    monkeypatch.setattr(ReferenceSyncService, "delete_project_invoice", broken)

    with pytest.raises(SQLAlchemyError):
        ProjectService(db).delete(project_id)

    db.rollback()
    assert db.get(Project, project_id) is not None
