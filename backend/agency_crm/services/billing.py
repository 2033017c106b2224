"""
Billing core - invoice totals, payment ledger and payment status

Everything here works on plain objects or on transient/persistent ORM rows
and never touches a session, so the invoice state can be recomputed and
tested without storage.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union, Mapping, Any

from pydantic import ValidationError

from agency_crm.core.clock import system_clock
from agency_crm.core.exceptions import InvoiceValidationError, PaymentValidationError
from agency_crm.core.identifiers import InvoiceNumberGenerator, default_number_generator
from agency_crm.models import Invoice, InvoicePayment, InvoiceStatus
from agency_crm.schemas import PaymentRecordCreate, payment_record_adapter

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

REQUIRED_CLIENT_FIELDS = ("name", "email", "phone", "address")


def _get(obj: Union[Mapping, Any], name: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value) -> Decimal:
    """Round to the two decimal places every money column stores"""
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ==================== CALCULATOR ====================

@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_total: Decimal
    total_amount: Decimal


def line_total(item) -> Decimal:
    return to_cents(_dec(_get(item, "quantity")) * _dec(_get(item, "unit_price")))


def line_tax(item) -> Decimal:
    tax_rate = _get(item, "tax_rate")
    if not tax_rate:
        return ZERO
    return to_cents(line_total(item) * _dec(tax_rate) / HUNDRED)


def calculate_totals(items: Iterable, discount=None) -> InvoiceTotals:
    """
    Sum line totals and line taxes, then subtract the discount.

    The discount is not clamped: a discount larger than subtotal + tax gives
    a negative total.
    """
    subtotal = ZERO
    tax_total = ZERO
    for item in items:
        subtotal += line_total(item)
        tax_total += line_tax(item)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        total_amount=subtotal + tax_total - to_cents(discount),
    )


# ==================== LEDGER ====================

def sum_payments(payments: Iterable) -> Decimal:
    return sum((to_cents(_get(p, "amount")) for p in payments), ZERO)


def validate_payment(data: Union[Mapping, PaymentRecordCreate]) -> PaymentRecordCreate:
    """Validate a payment against the rules of its method"""
    if not isinstance(data, Mapping):
        data = data.model_dump()
    try:
        return payment_record_adapter.validate_python(dict(data))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise PaymentValidationError(f"Invalid payment: {problems}") from e


def append_payment(invoice: Invoice, data, paid_at: Optional[datetime] = None) -> InvoicePayment:
    """
    Validate and append a payment record to the invoice ledger.

    Nothing is appended when validation fails.
    """
    payment = validate_payment(data)
    values = payment.model_dump(exclude_none=True)
    values["date"] = values.get("date") or paid_at or system_clock.now()
    values["amount"] = to_cents(values["amount"])
    record = InvoicePayment(**values)
    invoice.payments.append(record)
    return record


# ==================== STATE MACHINE ====================

def derive_status(current_status: Optional[str], amount_paid: Decimal, total_amount: Decimal,
                  amount_due: Decimal, due_date, today) -> str:
    if current_status == InvoiceStatus.CANCELLED.value:
        return current_status

    if amount_paid == ZERO:
        if current_status in (None, InvoiceStatus.DRAFT.value):
            status = InvoiceStatus.DRAFT.value
        else:
            status = InvoiceStatus.PENDING.value
    elif amount_paid < total_amount:
        status = InvoiceStatus.PARTIALLY_PAID.value
    else:
        status = InvoiceStatus.PAID.value

    if due_date is not None and today > due_date and amount_due > ZERO:
        status = InvoiceStatus.OVERDUE.value

    return status


def validate_invoice(invoice: Invoice) -> None:
    if invoice.due_date is None:
        raise InvoiceValidationError("Invoice due date is required")
    client = invoice.client or {}
    missing = [field for field in REQUIRED_CLIENT_FIELDS if not client.get(field)]
    if missing:
        raise InvoiceValidationError(f"Invoice client is missing required fields: {', '.join(missing)}")


def is_overdue(invoice: Invoice, now: Optional[datetime] = None) -> bool:
    now = now or system_clock.now()
    return invoice.due_date is not None and now.date() > invoice.due_date and _dec(invoice.amount_due) > ZERO


def recompute_invoice_state(invoice: Invoice, now: Optional[datetime] = None,
                            number_generator: Optional[InvoiceNumberGenerator] = None) -> Invoice:
    """
    Recompute every derived field of an invoice in place and return it.

    Called before every persist. Running it twice on unchanged input gives
    identical results; a missing invoice number is generated once.
    """
    validate_invoice(invoice)
    now = now or system_clock.now()
    number_generator = number_generator or default_number_generator

    for item in invoice.items:
        item.unit_price = to_cents(item.unit_price)
        item.tax_rate = to_cents(item.tax_rate)
        item.line_total = line_total(item)
        item.tax_amount = line_tax(item)

    discount = to_cents(invoice.discount)
    totals = calculate_totals(invoice.items, discount)
    amount_paid = sum_payments(invoice.payments)
    amount_due = totals.total_amount - amount_paid

    invoice.discount = discount
    invoice.subtotal = totals.subtotal
    invoice.tax_total = totals.tax_total
    invoice.total_amount = totals.total_amount
    invoice.amount_paid = amount_paid
    invoice.amount_due = amount_due
    invoice.status = derive_status(
        invoice.status, amount_paid, totals.total_amount, amount_due, invoice.due_date, now.date()
    )

    if not invoice.invoice_number:
        invoice.invoice_number = number_generator.next_number()

    return invoice

