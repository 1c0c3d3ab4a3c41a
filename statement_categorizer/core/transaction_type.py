"""
Transaction Type Detection

Classifies a raw statement description + signed amount into a
TransactionKind, and derives the money Direction from it.

Detection runs over the un-normalized description (upper-cased, accents
removed) as an ordered rule list: first match wins.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, List, Optional, Pattern

from .merchant_normalizer import strip_accents
from .models import Direction, TransactionKind, parse_amount


def _negative(amount: Decimal) -> bool:
    return amount < 0


def _positive(amount: Decimal) -> bool:
    return amount > 0


@dataclass(frozen=True)
class KindRule:
    """Description pattern (+ optional amount-sign test) mapped to a kind"""
    pattern: Pattern
    kind: TransactionKind
    amount_test: Optional[Callable[[Decimal], bool]] = None

    def matches(self, text: str, amount: Decimal) -> bool:
        if not self.pattern.search(text):
            return False
        return self.amount_test is None or self.amount_test(amount)


_TRANSFER = re.compile(r'TRANSFERENCIA|\bTED\b|\bDOC\b')

KIND_RULES: List[KindRule] = [
    KindRule(re.compile(r'PAGAMENTO\s+PIX'), TransactionKind.PIX_DEBIT, _negative),
    KindRule(re.compile(r'RECEBIMENTO\s+PIX|PIX\s+CRED'), TransactionKind.PIX_CREDIT, _positive),
    KindRule(re.compile(r'COMPRA|COMPRAS\s+NACIONAIS'), TransactionKind.CARD_PURCHASE),
    KindRule(_TRANSFER, TransactionKind.TRANSFER_OUT, _negative),
    KindRule(_TRANSFER, TransactionKind.TRANSFER_IN, _positive),
    KindRule(re.compile(r'BOLETO'), TransactionKind.BOLETO),
    KindRule(re.compile(r'TARIFA|PACOTE|MENSALIDADE'), TransactionKind.FEE),
]

INFLOW_KINDS = frozenset({TransactionKind.TRANSFER_IN, TransactionKind.PIX_CREDIT})
OUTFLOW_KINDS = frozenset({
    TransactionKind.TRANSFER_OUT,
    TransactionKind.PIX_DEBIT,
    TransactionKind.CARD_PURCHASE,
    TransactionKind.BOLETO,
    TransactionKind.FEE,
})


def detect_kind(description: Optional[str], amount: Any) -> TransactionKind:
    """
    Detect the transaction kind

    Args:
        description: Raw statement text (None is treated as empty)
        amount: Signed amount (unparseable values count as 0)

    Returns:
        The first matching TransactionKind, or OTHER
    """
    text = strip_accents((description or '').upper())
    value = parse_amount(amount)
    for rule in KIND_RULES:
        if rule.matches(text, value):
            return rule.kind
    return TransactionKind.OTHER


def derive_direction(kind: TransactionKind, amount: Any) -> Direction:
    """Kind decides first; only OTHER falls back to the amount sign"""
    if kind in INFLOW_KINDS:
        return Direction.INFLOW
    if kind in OUTFLOW_KINDS:
        return Direction.OUTFLOW

    value = parse_amount(amount)
    if value > 0:
        return Direction.INFLOW
    if value < 0:
        return Direction.OUTFLOW
    return Direction.NEUTRAL


def apply_direction_sign(direction: Direction, amount: Any) -> Decimal:
    """Inflow => |amount|, Outflow => -|amount|, Neutral => unchanged"""
    value = parse_amount(amount)
    if direction == Direction.INFLOW:
        return abs(value)
    if direction == Direction.OUTFLOW:
        # -abs(0) would be Decimal('-0')
        return -abs(value) if value else abs(value)
    return value
