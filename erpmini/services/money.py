from __future__ import annotations

from decimal import Decimal

from erpmini.errors import ValidationError
from erpmini.models import AccountType

CENT = Decimal('0.01')


def ensure_cents(amount: Decimal, *, field: str) -> None:
    """Reject amounts finer than the Numeric(14, 2) money columns store."""
    if amount != amount.quantize(CENT):
        raise ValidationError(f'{field} cannot have more than two decimal places')


def validate_amounts(total_amount: Decimal, received_amount: Decimal, payment_account_id: int | None) -> None:
    ensure_cents(total_amount, field='total amount')
    ensure_cents(received_amount, field='received amount')
    if total_amount < 0:
        raise ValidationError('total amount cannot be negative')
    if received_amount < 0:
        raise ValidationError('received amount cannot be negative')
    if received_amount > total_amount:
        raise ValidationError('received amount cannot exceed total amount')
    if received_amount > 0 and not payment_account_id:
        raise ValidationError('payment account is required when an amount is received')


def cash_bank_delta(account_type: AccountType | None, amount: Decimal) -> dict:
    if not amount or account_type is None:
        return {}
    if account_type == AccountType.BANK:
        return {'bank': amount}
    return {'cash': amount}
