"""
Pipeline data structures

Raw statement lines go in, categorized records come out. Reference-data
types (dictionary entries, registry entities) live here too so every stage
shares one vocabulary.
"""
import math
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class TransactionKind(str, Enum):
    """Kind of bank movement, derived once from description + amount sign"""
    PIX_DEBIT = 'PIX_DEB'
    PIX_CREDIT = 'PIX_CRED'
    CARD_PURCHASE = 'COMPRA'
    TRANSFER_OUT = 'TRANSFER_OUT'
    TRANSFER_IN = 'TRANSFER_IN'
    BOLETO = 'BOLETO'
    FEE = 'TARIFA'
    OTHER = 'OUTRO'


class Direction(str, Enum):
    """Which way the money moved"""
    INFLOW = 'Entrada'
    OUTFLOW = 'Saída'
    NEUTRAL = 'Neutra'


PAYMENT_METHODS = {
    TransactionKind.PIX_DEBIT: 'PIX',
    TransactionKind.PIX_CREDIT: 'PIX',
    TransactionKind.CARD_PURCHASE: 'Cartão',
    TransactionKind.TRANSFER_OUT: 'Transferência',
    TransactionKind.TRANSFER_IN: 'Transferência',
    TransactionKind.BOLETO: 'Boleto',
}


def parse_amount(value: Any) -> Decimal:
    """
    Parse a statement amount into a Decimal.

    Accepts numbers and strings in either Brazilian ("R$ 1.234,56") or
    dot-decimal ("-1234.56") notation. Anything unparseable becomes 0 so a
    damaged row still yields a usable record.
    """
    if value is None or isinstance(value, bool):
        return Decimal('0')
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal('0')
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return Decimal('0')
        return Decimal(str(value))

    text = str(value).strip()
    if not text:
        return Decimal('0')

    negative = False
    if text.startswith('(') and text.endswith(')'):
        negative = True
        text = text[1:-1]
    text = re.sub(r'R\$', '', text, flags=re.IGNORECASE).replace(' ', '')
    if text.startswith('-'):
        negative = True
        text = text[1:]
    elif text.startswith('+'):
        text = text[1:]
    if text.endswith('-'):
        negative = True
        text = text[:-1]

    # Whichever separator comes last is the decimal separator
    if ',' in text and '.' in text:
        if text.rfind(',') > text.rfind('.'):
            text = text.replace('.', '').replace(',', '.')
        else:
            text = text.replace(',', '')
    elif ',' in text:
        text = text.replace(',', '.')

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return Decimal('0')
    if not amount.is_finite():
        return Decimal('0')
    return -amount if negative else amount


def format_amount(amount: Decimal) -> str:
    """Decimal as a plain string; zero never carries a sign ('-0.00' -> '0.00')"""
    return str(amount.copy_abs() if amount.is_zero() else amount)


@dataclass(frozen=True)
class RawRecord:
    """One line of a bank statement, as received from the importer"""
    date: str
    description: str
    amount: Decimal
    balance: Optional[Decimal] = None
    account_ref: Optional[str] = None


def raw_record_from_mapping(data: Mapping[str, Any]) -> RawRecord:
    """
    Build a RawRecord from a loose API body or parsed row.

    Missing date defaults to today, missing description to '' and an
    unparseable amount to 0.
    """
    balance = data.get('balance')
    account_ref = data.get('accountId', data.get('account_ref'))
    return RawRecord(
        date=str(data.get('date') or date.today().isoformat()),
        description=str(data.get('description') or ''),
        amount=parse_amount(data.get('amount')),
        balance=parse_amount(balance) if balance not in (None, '') else None,
        account_ref=str(account_ref) if account_ref is not None else None,
    )


@dataclass(frozen=True)
class NormalizedMerchant:
    """Merchant text after bank noise has been stripped"""
    raw_fragment: str
    canonical_name: str
    slug: str


@dataclass(frozen=True)
class DictionaryEntry:
    """A known substring mapped to a canonical merchant"""
    pattern_substring: str
    canonical_name: str
    registry_id: Optional[str] = None
    category: Optional[str] = None
    confidence: float = 0.99


@dataclass(frozen=True)
class RegistryEntity:
    """A company record from the business registry"""
    registry_id: str
    display_name: str
    legal_name: str
    activity_code: str


@dataclass(frozen=True)
class DictionaryMatch:
    name: str
    registry_id: Optional[str]
    category: Optional[str]
    score: float
    partial: bool = False


@dataclass(frozen=True)
class RegistryMatch:
    entity: RegistryEntity
    score: float

    @property
    def registry_id(self) -> str:
        return self.entity.registry_id

    @property
    def display_name(self) -> str:
        return self.entity.display_name

    @property
    def activity_code(self) -> str:
        return self.entity.activity_code


@dataclass(frozen=True)
class StageMatch:
    """Category suggestion from the rule matcher or keyword scorer"""
    category: str
    score: float
    name: Optional[str] = None


@dataclass
class CategorizedRecord:
    """Pipeline output: one per RawRecord"""
    date: str
    raw_description: str
    merchant_raw: str
    merchant_normalized: str
    merchant_slug: str
    kind: TransactionKind
    direction: Direction
    amount: Decimal
    category: str
    registry_id: Optional[str]
    canonical_merchant_name: str
    confidence: float
    evidence_chain: List[str] = field(default_factory=list)

    @property
    def payment_method(self) -> str:
        return PAYMENT_METHODS.get(self.kind, 'Outro')

    @property
    def is_fallback(self) -> bool:
        return self.evidence_chain == ['fallback']

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation (enums by value, amount as string)"""
        return {
            'date': self.date,
            'raw_description': self.raw_description,
            'merchant_raw': self.merchant_raw,
            'merchant_normalized': self.merchant_normalized,
            'merchant_slug': self.merchant_slug,
            'kind': self.kind.value,
            'direction': self.direction.value,
            'amount': format_amount(self.amount),
            'category': self.category,
            'registry_id': self.registry_id,
            'canonical_merchant_name': self.canonical_merchant_name,
            'confidence': self.confidence,
            'evidence_chain': list(self.evidence_chain),
        }

    def to_api_payload(self) -> Dict[str, Any]:
        """Shape expected by the transactions API"""
        return {
            'date': self.date,
            'description': self.raw_description,
            'merchant': self.canonical_merchant_name,
            'category': self.category,
            'type': 'income' if self.direction == Direction.INFLOW or (
                self.direction == Direction.NEUTRAL and self.amount >= 0) else 'expense',
            'amount': format_amount(self.amount),
            'confidence': self.confidence,
            'sources': list(self.evidence_chain),
            'paymentMethod': self.payment_method,
            'registryId': self.registry_id,
            'reasoning': f"Categorizado via: {' → '.join(self.evidence_chain)}",
        }
