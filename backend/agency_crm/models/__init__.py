"""
SQLAlchemy Models for the Agency CRM
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric, JSON,
    ForeignKey, Index
)
from sqlalchemy.orm import relationship
import enum

from agency_crm.core.database import Base


# ==================== ENUMS ====================

class UserRole(enum.Enum):
    USER = "user"
    ADMIN = "admin"


class InvoiceStatus(enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(enum.Enum):
    BANK_TRANSFER = "bank-transfer"
    CREDIT_CARD = "credit-card"
    PAYPAL = "paypal"
    CASH = "cash"
    CRYPTO = "crypto"
    CHEQUE = "cheque"
    UPI = "upi"
    OTHER = "other"


class ProjectStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class ProjectPriority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProposalStatus(enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEGOTIATING = "negotiating"


class ProjectProposalStatus(enum.Enum):
    """Proposal status as mirrored onto the owning project"""
    NOT_SENT = "not_sent"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEEDS_REVISION = "needs_revision"


# ==================== USERS ====================

class User(Base):
    """Application user"""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.USER.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


# ==================== PROJECTS ====================

class Project(Base):
    """
    Client project.

    `proposal_*` and `invoice_id` are denormalized references kept in sync by
    ReferenceSyncService; they carry no foreign-key constraint.
    """
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    client = Column(JSON, nullable=False)  # {name, email, phone}

    proposal_id = Column(Integer, nullable=True)
    proposal_status = Column(String(20), default=ProjectProposalStatus.NOT_SENT.value)
    proposal_sent_date = Column(DateTime, nullable=True)

    invoice_id = Column(Integer, nullable=True)

    status = Column(String(20), default=ProjectStatus.PENDING.value)
    priority = Column(String(10), default=ProjectPriority.MEDIUM.value)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    total_budget = Column(Numeric(15, 2), nullable=False)
    amount_received = Column(Numeric(15, 2), default=Decimal("0.00"))
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def amount_pending(self) -> Decimal:
        return (self.total_budget or Decimal("0")) - (self.amount_received or Decimal("0"))

    @property
    def proposal(self):
        if self.proposal_id is None:
            return None
        return {
            "id": self.proposal_id,
            "status": self.proposal_status or ProjectProposalStatus.NOT_SENT.value,
            "sent_date": self.proposal_sent_date,
        }


# ==================== PROPOSALS ====================

class Proposal(Base):
    """Proposal sent to a (prospective) client"""
    __tablename__ = 'proposals'

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, nullable=True, index=True)
    client_details = Column(JSON, nullable=False)  # {name, email, phone, address}
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    scope = Column(Text, nullable=False)
    deliverables = Column(JSON, default=list)
    timeline = Column(String(255), nullable=False)
    currency = Column(JSON, nullable=False)  # {code, symbol}
    budget_estimate = Column(Numeric(15, 2), nullable=False)
    terms = Column(Text, nullable=True)
    status = Column(String(20), default=ProposalStatus.DRAFT.value)
    sent_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ==================== INVOICES ====================

class Invoice(Base):
    """Invoice with its line items and payment ledger"""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(50), unique=True, nullable=False)
    project_id = Column(Integer, nullable=True, index=True)
    currency = Column(JSON, nullable=False)  # {code, symbol}
    agency = Column(JSON, nullable=False)
    client = Column(JSON, nullable=False)

    # Payment aggregate, derived by recompute_invoice_state
    status = Column(String(20), default=InvoiceStatus.DRAFT.value)
    subtotal = Column(Numeric(15, 2), default=Decimal("0.00"))
    tax_total = Column(Numeric(15, 2), default=Decimal("0.00"))
    discount = Column(Numeric(15, 2), default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    amount_paid = Column(Numeric(15, 2), default=Decimal("0.00"))
    amount_due = Column(Numeric(15, 2), default=Decimal("0.00"))

    issued_date = Column(DateTime, default=datetime.utcnow)
    due_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )
    payments = relationship(
        "InvoicePayment", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoicePayment.id"
    )

    __table_args__ = (
        Index('ix_invoices_status', 'status'),
    )

    @property
    def payment(self) -> dict:
        return {
            "status": self.status,
            "subtotal": self.subtotal,
            "tax_total": self.tax_total,
            "discount": self.discount,
            "total_amount": self.total_amount,
            "amount_paid": self.amount_paid,
            "amount_due": self.amount_due,
        }

    @property
    def payment_percentage(self) -> Decimal:
        if not self.total_amount:
            return Decimal("0")
        return (self.amount_paid or Decimal("0")) / self.total_amount * 100


class InvoiceItem(Base):
    """Invoice line item"""
    __tablename__ = 'invoice_items'

    id = Column(Integer, primary_key=True)
    position = Column(Integer, default=0)
    description = Column(String(500), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), default=Decimal("0.00"))
    line_total = Column(Numeric(15, 2), default=Decimal("0.00"))
    tax_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)

    invoice = relationship("Invoice", back_populates="items")


class InvoicePayment(Base):
    """Payment record appended to an invoice's ledger"""
    __tablename__ = 'invoice_payments'

    id = Column(Integer, primary_key=True)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    date = Column(DateTime, default=datetime.utcnow)
    transaction_id = Column(String(100), nullable=True)
    account_number = Column(String(100), nullable=True)
    card_last4_digits = Column(String(4), nullable=True)
    crypto_wallet_address = Column(String(255), nullable=True)
    cheque_number = Column(String(50), nullable=True)
    upi_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="payments")


__all__ = [
    'UserRole', 'InvoiceStatus', 'PaymentMethod', 'ProjectStatus', 'ProjectPriority',
    'ProposalStatus', 'ProjectProposalStatus',
    'User', 'Project', 'Proposal', 'Invoice', 'InvoiceItem', 'InvoicePayment',
]
