from datetime import date, datetime, timedelta
from decimal import Decimal
import random

import pytest

from agency_crm.core.exceptions import InvoiceValidationError, PaymentValidationError
from agency_crm.core.identifiers import RandomInvoiceNumberGenerator
from agency_crm.models import Invoice, InvoiceItem
from agency_crm.services.billing import (
    append_payment, calculate_totals, derive_status, is_overdue, line_tax, line_total,
    recompute_invoice_state, sum_payments, validate_payment,
)

from conftest import CLIENT, NOW


class CountingNumbers:
    def __init__(self):
        self.calls = 0

    def next_number(self) -> str:
        self.calls += 1
        return f"TEST-{self.calls:04d}"


def make_invoice(total="1000", status="pending", due_date=None, discount="0", items=None) -> Invoice:
    invoice = Invoice(
        client=dict(CLIENT),
        due_date=due_date or date(2099, 12, 31),
        status=status,
        discount=Decimal(discount),
    )
    invoice.items = items if items is not None else [
        InvoiceItem(position=0, description="Work", quantity=1, unit_price=Decimal(total), tax_rate=Decimal("0"))
    ]
    return invoice


def cash(amount: str) -> dict:
    return {"method": "cash", "amount": amount}


# ==================== CALCULATOR ====================

def test_calculate_totals_sums_lines_and_tax():
    items = [
        {"quantity": 2, "unit_price": "100", "tax_rate": "10"},
        {"quantity": 1, "unit_price": "50"},
    ]
    totals = calculate_totals(items, Decimal("20"))

    assert totals.subtotal == Decimal("250")
    assert totals.tax_total == Decimal("20")
    assert totals.total_amount == Decimal("250")


def test_calculate_totals_is_independent_of_item_order():
    items = [
        {"quantity": 3, "unit_price": "19.99", "tax_rate": "18"},
        {"quantity": 1, "unit_price": "250.50", "tax_rate": "5"},
        {"quantity": 7, "unit_price": "3.10"},
    ]
    assert calculate_totals(items) == calculate_totals(list(reversed(items)))


def test_discount_is_not_clamped():
    totals = calculate_totals([{"quantity": 1, "unit_price": "100"}], Decimal("150"))
    assert totals.total_amount == Decimal("-50")


def test_missing_discount_and_tax_rate_count_as_zero():
    totals = calculate_totals([{"quantity": 4, "unit_price": "25", "tax_rate": None}], None)
    assert totals.tax_total == Decimal("0")
    assert totals.total_amount == Decimal("100")


def test_line_helpers_accept_attribute_objects():
    item = InvoiceItem(description="Hosting", quantity=3, unit_price=Decimal("40"), tax_rate=Decimal("12.5"))
    assert line_total(item) == Decimal("120")
    assert line_tax(item) == Decimal("15")


def test_line_amounts_round_half_up_to_cents():
    item = {"quantity": 3, "unit_price": "9.99", "tax_rate": "12.5"}
    assert line_total(item) == Decimal("29.97")
    assert line_tax(item) == Decimal("3.75")
    assert line_tax({"quantity": 1, "unit_price": "0.05", "tax_rate": "12.5"}) == Decimal("0.01")


# ==================== LEDGER ====================

def test_sum_payments_is_order_independent():
    payments = [{"amount": "400"}, {"amount": "250.25"}, {"amount": "0.75"}]
    assert sum_payments(payments) == Decimal("651")
    assert sum_payments(reversed(payments)) == Decimal("651")
    assert sum_payments([]) == Decimal("0")


def test_validate_payment_accepts_cash_without_transaction_id():
    payment = validate_payment(cash("10"))
    assert payment.method == "cash"
    assert payment.transaction_id is None


@pytest.mark.parametrize("data", [
    {"method": "bank-transfer", "amount": "10", "transaction_id": "TX1"},
    {"method": "credit-card", "amount": "10", "transaction_id": "TX1", "card_last4_digits": "12a4"},
    {"method": "crypto", "amount": "10", "transaction_id": "TX1"},
    {"method": "cheque", "amount": "10", "transaction_id": "TX1"},
    {"method": "upi", "amount": "10", "transaction_id": "TX1"},
    {"method": "paypal", "amount": "10"},
    {"method": "cash", "amount": "0"},
    {"method": "cash", "amount": "0.001"},
    {"method": "barter", "amount": "10", "transaction_id": "TX1"},
])
def test_validate_payment_rejects_missing_method_fields(data):
    with pytest.raises(PaymentValidationError):
        validate_payment(data)


def test_invalid_payment_leaves_ledger_untouched():
    invoice = make_invoice()
    with pytest.raises(PaymentValidationError):
        append_payment(invoice, {"method": "bank-transfer", "amount": "100", "transaction_id": "TX1"})
    assert invoice.payments == []


def test_append_payment_defaults_date_and_keeps_identifiers():
    invoice = make_invoice()
    record = append_payment(
        invoice,
        {"method": "upi", "amount": "99.50", "transaction_id": "UPI-7", "upi_id": "acme@bank"},
        paid_at=NOW,
    )
    assert record.date == NOW
    assert record.upi_id == "acme@bank"
    assert invoice.payments == [record]


# ==================== STATE MACHINE ====================

def test_payment_sequence_moves_through_statuses():
    invoice = make_invoice(total="1000", status="pending")
    recompute_invoice_state(invoice, NOW)

    observed = [(invoice.payment["status"], invoice.amount_paid, invoice.amount_due)]
    for amount in ("400", "400", "300"):
        append_payment(invoice, cash(amount), paid_at=NOW)
        recompute_invoice_state(invoice, NOW)
        observed.append((invoice.status, invoice.amount_paid, invoice.amount_due))

    assert observed == [
        ("pending", Decimal("0"), Decimal("1000")),
        ("partially_paid", Decimal("400"), Decimal("600")),
        ("partially_paid", Decimal("800"), Decimal("200")),
        ("paid", Decimal("1100"), Decimal("-100")),
    ]


def test_unpaid_past_due_invoice_is_overdue():
    invoice = make_invoice(total="500", due_date=NOW.date() - timedelta(days=1))
    append_payment(invoice, cash("200"), paid_at=NOW)
    recompute_invoice_state(invoice, NOW)

    assert invoice.status == "overdue"
    assert invoice.amount_due == Decimal("300")
    assert is_overdue(invoice, NOW)


def test_fully_paid_past_due_invoice_is_not_overdue():
    invoice = make_invoice(total="500", due_date=NOW.date() - timedelta(days=1))
    append_payment(invoice, cash("500"), paid_at=NOW)
    recompute_invoice_state(invoice, NOW)

    assert invoice.status == "paid"
    assert not is_overdue(invoice, NOW)


def test_due_today_is_not_overdue():
    invoice = make_invoice(total="500", due_date=NOW.date())
    recompute_invoice_state(invoice, NOW)
    assert invoice.status == "pending"


def test_draft_is_kept_until_money_arrives():
    invoice = make_invoice(status=None)
    recompute_invoice_state(invoice, NOW)
    assert invoice.status == "draft"

    append_payment(invoice, cash("100"), paid_at=NOW)
    recompute_invoice_state(invoice, NOW)
    assert invoice.status == "partially_paid"


def test_cancelled_is_preserved():
    invoice = make_invoice(total="500", status="cancelled", due_date=NOW.date() - timedelta(days=30))
    append_payment(invoice, cash("100"), paid_at=NOW)
    recompute_invoice_state(invoice, NOW)

    assert invoice.status == "cancelled"
    assert invoice.amount_paid == Decimal("100")


def test_recompute_is_idempotent_and_numbers_once():
    numbers = CountingNumbers()
    invoice = make_invoice(discount="25", items=[
        InvoiceItem(position=0, description="Design", quantity=2, unit_price=Decimal("300"), tax_rate=Decimal("18")),
        InvoiceItem(position=1, description="Hosting", quantity=1, unit_price=Decimal("120"), tax_rate=None),
    ])
    append_payment(invoice, cash("200"), paid_at=NOW)

    def snapshot():
        return (
            invoice.invoice_number, invoice.status, invoice.subtotal, invoice.tax_total,
            invoice.total_amount, invoice.amount_paid, invoice.amount_due,
            [(i.line_total, i.tax_amount) for i in invoice.items],
        )

    recompute_invoice_state(invoice, NOW, numbers)
    first = snapshot()
    recompute_invoice_state(invoice, NOW, numbers)

    assert snapshot() == first
    assert numbers.calls == 1
    assert invoice.invoice_number == "TEST-0001"
    assert invoice.subtotal == Decimal("720")
    assert invoice.tax_total == Decimal("108")
    assert invoice.total_amount == Decimal("803")
    assert invoice.amount_due == Decimal("603")


def test_recompute_keeps_existing_invoice_number():
    invoice = make_invoice()
    invoice.invoice_number = "EGMA-INV-1234"
    recompute_invoice_state(invoice, NOW, CountingNumbers())
    assert invoice.invoice_number == "EGMA-INV-1234"


def test_recompute_requires_client_contact_fields():
    invoice = make_invoice()
    invoice.client = {"name": "Acme Corp", "email": "billing@acme.example.com"}
    with pytest.raises(InvoiceValidationError) as excinfo:
        recompute_invoice_state(invoice, NOW)
    assert "phone" in str(excinfo.value)
    assert "address" in str(excinfo.value)


def test_recompute_requires_due_date():
    invoice = make_invoice()
    invoice.due_date = None
    with pytest.raises(InvoiceValidationError):
        recompute_invoice_state(invoice, NOW)


def test_derive_status_returns_pending_for_unpaid_non_draft():
    status = derive_status("partially_paid", Decimal("0"), Decimal("100"), Decimal("100"),
                           date(2099, 1, 1), NOW.date())
    assert status == "pending"


def test_random_invoice_numbers_use_prefix_and_four_digits():
    generator = RandomInvoiceNumberGenerator(prefix="EGMA-INV", rng=random.Random(7))
    for _ in range(20):
        prefix, _, suffix = generator.next_number().rpartition("-")
        assert prefix == "EGMA-INV"
        assert len(suffix) == 4 and 1000 <= int(suffix) <= 9999


def test_recompute_normalizes_inputs_to_stored_precision():
    invoice = make_invoice(items=[
        InvoiceItem(position=0, description="Consulting", quantity=1,
                    unit_price=Decimal("10"), tax_rate=Decimal("12.345")),
    ])
    recompute_invoice_state(invoice, NOW)
    first = (invoice.items[0].tax_rate, invoice.tax_total, invoice.total_amount)

    recompute_invoice_state(invoice, NOW)

    assert (invoice.items[0].tax_rate, invoice.tax_total, invoice.total_amount) == first
    assert first == (Decimal("12.35"), Decimal("1.24"), Decimal("11.24"))
    assert invoice.total_amount == invoice.subtotal + invoice.tax_total - invoice.discount
