"""
Refund calculator.

Pure functions over line values, no database access. Lines may be
ReturnLine instances or LineInput values; only quantity, unit_price,
discount, tax_rate and condition are read.

Amounts are kept unrounded per line and rounded once when totals are
produced, so many small lines never accumulate rounding drift.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

ZERO = Decimal('0')
HUNDRED = Decimal('100')
DEFAULT_QUANTUM = Decimal('0.01')

REFUND_FULL = 'full'
REFUND_PARTIAL = 'partial'
REFUND_NONE = 'none'
REFUND_POLICIES = (REFUND_FULL, REFUND_PARTIAL, REFUND_NONE)

REFUND_ELIGIBLE_CONDITION = 'good'


@dataclass(frozen=True)
class LineInput:
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    condition: str = REFUND_ELIGIBLE_CONDITION


@dataclass(frozen=True)
class LineAmounts:
    gross: Decimal
    tax_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class ReturnTotals:
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    total: Decimal
    refund_amount: Decimal

    @property
    def net_amount(self):
        """Subtotal less discounts (the note's pre-tax amount)."""
        return self.subtotal - self.discount_total


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value, quantum=None) -> Decimal:
    """Round half-up to the money quantum (0.01 unless configured)."""
    return _decimal(value).quantize(_decimal(quantum or DEFAULT_QUANTUM), rounding=ROUND_HALF_UP)


def line_amounts(line) -> LineAmounts:
    """
    Unrounded amounts for one line.

    gross = quantity x unit_price
    tax = gross x tax_rate / 100
    line_total = gross - discount + tax
    """
    gross = _decimal(line.quantity) * _decimal(line.unit_price)
    tax_amount = gross * _decimal(line.tax_rate) / HUNDRED
    line_total = gross - _decimal(line.discount) + tax_amount
    return LineAmounts(gross=gross, tax_amount=tax_amount, line_total=line_total)


def calculate_totals(
    lines: Iterable,
    kind: str,
    refund_policy: Optional[str] = None,
    quantum=None
) -> ReturnTotals:
    """
    Totals and refund/debit amount for a return.

    Args:
        lines: line items
        kind: 'sale' or 'purchase'
        refund_policy: full|partial|none, sale returns only
        quantum: rounding quantum for the totals

    Sale returns:
        none -> 0; full -> total; partial -> sum of line totals of
        lines in good condition.
    Purchase returns:
        the debit is the total, whatever the item condition.

    Example:
        >>> calculate_totals([
        ...     LineInput(2, Decimal('10'), tax_rate=Decimal('10')),
        ...     LineInput(1, Decimal('20'), condition='damaged'),
        ... ], 'sale', 'partial').refund_amount
        Decimal('22.00')
    """
    lines: List = list(lines)

    subtotal = ZERO
    discount_total = ZERO
    tax_total = ZERO
    eligible_total = ZERO

    for line in lines:
        amounts = line_amounts(line)
        subtotal += amounts.gross
        discount_total += _decimal(line.discount)
        tax_total += amounts.tax_amount
        if line.condition == REFUND_ELIGIBLE_CONDITION:
            eligible_total += amounts.line_total

    total = subtotal - discount_total + tax_total

    if kind == 'purchase':
        refund_amount = total
    elif refund_policy == REFUND_NONE:
        refund_amount = ZERO
    elif refund_policy == REFUND_PARTIAL:
        refund_amount = eligible_total
    elif refund_policy == REFUND_FULL:
        refund_amount = total
    else:
        raise ValueError(f'Unknown refund policy: {refund_policy!r}')

    return ReturnTotals(
        subtotal=quantize_money(subtotal, quantum),
        discount_total=quantize_money(discount_total, quantum),
        tax_total=quantize_money(tax_total, quantum),
        total=quantize_money(total, quantum),
        refund_amount=quantize_money(refund_amount, quantum),
    )
