"""
Pydantic Schemas for API Validation
"""
from pydantic import BaseModel, RootModel, EmailStr, Field, ConfigDict, TypeAdapter, model_validator
from typing import Annotated, Generic, List, Literal, Optional, TypeVar, Union
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

from agency_crm.core.config import settings


# ==================== ENUMS ====================

class ProjectStatusEnum(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class ProjectPriorityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProposalStatusEnum(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEGOTIATING = "negotiating"


class ProjectProposalStatusEnum(str, Enum):
    NOT_SENT = "not_sent"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEEDS_REVISION = "needs_revision"


class InvoiceStatusEnum(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Statuses a caller may request; the rest are derived
InitialInvoiceStatus = Literal["draft", "pending"]


# ==================== COMMON ====================

class MessageResponse(BaseModel):
    message: str


class Currency(BaseModel):
    code: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY_CODE, min_length=3, max_length=3)
    symbol: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY_SYMBOL)


def _default_currency() -> Currency:
    return Currency()


class Pagination(BaseModel):
    next: Optional[dict] = None
    prev: Optional[dict] = None


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    count: int
    total: int
    pagination: Pagination
    data: List[T]


# ==================== AUTH SCHEMAS ====================

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UpdateDetailsRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


# ==================== USER SCHEMAS ====================

class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Literal["user", "admin"]] = None
    is_active: Optional[bool] = None


# ==================== PROJECT SCHEMAS ====================

class ProjectClient(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)


class ProjectProposalRef(BaseModel):
    id: int
    status: ProjectProposalStatusEnum = ProjectProposalStatusEnum.NOT_SENT
    sent_date: Optional[datetime] = None


class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    client: ProjectClient
    status: ProjectStatusEnum = ProjectStatusEnum.PENDING
    priority: ProjectPriorityEnum = ProjectPriorityEnum.MEDIUM
    start_date: date
    end_date: Optional[date] = None
    total_budget: Decimal = Field(..., ge=0, decimal_places=2)
    amount_received: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    description: Optional[str] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client: Optional[ProjectClient] = None
    status: Optional[ProjectStatusEnum] = None
    priority: Optional[ProjectPriorityEnum] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_budget: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    amount_received: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    description: Optional[str] = None


class ProjectResponse(ProjectBase):
    id: int
    proposal: Optional[ProjectProposalRef] = None
    invoice_id: Optional[int] = None
    amount_pending: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentReceivedUpdate(BaseModel):
    amount_received: Decimal = Field(..., ge=0, decimal_places=2)


# ==================== PROPOSAL SCHEMAS ====================

class ProposalClientDetails(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: Optional[str] = None


class _ProjectRefInput(BaseModel):
    @model_validator(mode="before")
    @classmethod
    def drop_blank_project_id(cls, data):
        # Forms post an empty string when no project is selected
        if isinstance(data, dict) and data.get("project_id") == "":
            data = {k: v for k, v in data.items() if k != "project_id"}
        return data


class ProposalCreate(_ProjectRefInput):
    project_id: Optional[int] = None
    client_details: ProposalClientDetails
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    scope: str = Field(..., min_length=1)
    deliverables: List[str] = []
    timeline: str = Field(..., min_length=1, max_length=255)
    currency: Currency = Field(default_factory=_default_currency)
    budget_estimate: Decimal = Field(..., ge=0, decimal_places=2)
    terms: Optional[str] = None
    status: ProposalStatusEnum = ProposalStatusEnum.DRAFT
    notes: Optional[str] = None


class ProposalUpdate(_ProjectRefInput):
    project_id: Optional[int] = None
    client_details: Optional[ProposalClientDetails] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    scope: Optional[str] = Field(None, min_length=1)
    deliverables: Optional[List[str]] = None
    timeline: Optional[str] = Field(None, min_length=1, max_length=255)
    currency: Optional[Currency] = None
    budget_estimate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    terms: Optional[str] = None
    status: Optional[ProposalStatusEnum] = None
    notes: Optional[str] = None


class ProposalStatusChange(BaseModel):
    status: ProposalStatusEnum


class ProposalResponse(BaseModel):
    id: int
    project_id: Optional[int] = None
    client_details: ProposalClientDetails
    title: str
    description: str
    scope: str
    deliverables: List[str] = []
    timeline: str
    currency: Currency
    budget_estimate: Decimal
    terms: Optional[str] = None
    status: ProposalStatusEnum
    sent_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProposalLinkResponse(BaseModel):
    message: str
    proposal: ProposalResponse
    project: ProjectResponse


# ==================== PAYMENT SCHEMAS ====================
# One variant per method, each carrying exactly the identifier fields it requires.

class _PaymentBase(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: Optional[datetime] = None
    notes: Optional[str] = None


class BankTransferPayment(_PaymentBase):
    method: Literal["bank-transfer"]
    transaction_id: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)


class CreditCardPayment(_PaymentBase):
    method: Literal["credit-card"]
    transaction_id: str = Field(..., min_length=1)
    card_last4_digits: str = Field(..., pattern=r"^\d{4}$")


class PaypalPayment(_PaymentBase):
    method: Literal["paypal"]
    transaction_id: str = Field(..., min_length=1)


class CashPayment(_PaymentBase):
    method: Literal["cash"]
    transaction_id: Optional[str] = None


class CryptoPayment(_PaymentBase):
    method: Literal["crypto"]
    transaction_id: str = Field(..., min_length=1)
    crypto_wallet_address: str = Field(..., min_length=1)


class ChequePayment(_PaymentBase):
    method: Literal["cheque"]
    transaction_id: str = Field(..., min_length=1)
    cheque_number: str = Field(..., min_length=1)


class UpiPayment(_PaymentBase):
    method: Literal["upi"]
    transaction_id: str = Field(..., min_length=1)
    upi_id: str = Field(..., min_length=1)


class OtherPayment(_PaymentBase):
    method: Literal["other"]
    transaction_id: str = Field(..., min_length=1)


PaymentRecordCreate = Annotated[
    Union[
        BankTransferPayment, CreditCardPayment, PaypalPayment, CashPayment,
        CryptoPayment, ChequePayment, UpiPayment, OtherPayment,
    ],
    Field(discriminator="method"),
]

payment_record_adapter = TypeAdapter(PaymentRecordCreate)


class PaymentRecordInput(RootModel):
    """Request body for a single payment"""
    root: PaymentRecordCreate


class PaymentRecordResponse(BaseModel):
    id: int
    method: str
    amount: Decimal
    date: datetime
    transaction_id: Optional[str] = None
    account_number: Optional[str] = None
    card_last4_digits: Optional[str] = None
    crypto_wallet_address: Optional[str] = None
    cheque_number: Optional[str] = None
    upi_id: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== INVOICE SCHEMAS ====================

class AgencyInfo(BaseModel):
    name: str = Field(default_factory=lambda: settings.DEFAULT_AGENCY_NAME, min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    logo: Optional[str] = None
    website: Optional[str] = None
    registration_number: Optional[str] = None


def _default_agency() -> AgencyInfo:
    return AgencyInfo(**settings.default_agency)


class InvoiceClient(BaseModel):
    name: str = Field(..., min_length=1)
    agency_name: Optional[str] = None
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    registration_number: Optional[str] = None


class InvoiceClientOverrides(BaseModel):
    name: Optional[str] = None
    agency_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    registration_number: Optional[str] = None


class LineItemCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class LineItemResponse(LineItemCreate):
    id: int
    line_total: Decimal
    tax_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    invoice_number: Optional[str] = Field(None, max_length=50)
    project_id: Optional[int] = None
    currency: Currency = Field(default_factory=_default_currency)
    agency: AgencyInfo = Field(default_factory=_default_agency)
    client: InvoiceClient
    items: List[LineItemCreate] = []
    payments: List[PaymentRecordCreate] = []
    status: InitialInvoiceStatus = "draft"
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    issued_date: Optional[datetime] = None
    due_date: date
    notes: Optional[str] = None
    terms: Optional[str] = None


class InvoiceUpdate(BaseModel):
    """Invoice number, project link and payments are not updatable here"""
    currency: Optional[Currency] = None
    agency: Optional[AgencyInfo] = None
    client: Optional[InvoiceClient] = None
    items: Optional[List[LineItemCreate]] = None
    status: Optional[InitialInvoiceStatus] = None
    discount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    issued_date: Optional[datetime] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class InvoiceFromProject(BaseModel):
    currency: Optional[Currency] = None
    agency: Optional[AgencyInfo] = None
    client: Optional[InvoiceClientOverrides] = None
    items: Optional[List[LineItemCreate]] = None
    payments: List[PaymentRecordCreate] = []
    status: InitialInvoiceStatus = "pending"
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    issued_date: Optional[datetime] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class InvoicePaymentSummary(BaseModel):
    status: InvoiceStatusEnum
    subtotal: Decimal
    tax_total: Decimal
    discount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    project_id: Optional[int] = None
    currency: Currency
    agency: AgencyInfo
    client: InvoiceClient
    items: List[LineItemResponse] = []
    payments: List[PaymentRecordResponse] = []
    payment: InvoicePaymentSummary
    payment_percentage: Decimal
    issued_date: datetime
    due_date: date
    notes: Optional[str] = None
    terms: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceSummary(BaseModel):
    id: int
    invoice_number: str
    status: InvoiceStatusEnum
    total_amount: Decimal
    amount_due: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoicePaymentStatus(BaseModel):
    invoice_id: int
    invoice_number: str
    status: InvoiceStatusEnum
    total_amount: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    payment_percentage: Decimal
    is_overdue: bool
    due_date: date


# ==================== PROJECT VIEWS ====================

class ProjectWithInvoice(ProjectResponse):
    invoice: Optional[InvoiceSummary] = None


class ProjectFinancialSummary(BaseModel):
    project_id: int
    project_name: str
    total_budget: Decimal
    amount_received: Decimal
    amount_pending: Decimal
    completion_percentage: Decimal
    invoice: Optional[InvoiceSummary] = None


# ==================== DASHBOARD ====================

class DashboardStats(BaseModel):
    total_projects: int
    total_revenue: Decimal
    pending_invoices: int
