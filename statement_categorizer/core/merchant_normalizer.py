"""
Merchant Normalization Module

Converts raw bank statement descriptions into clean, normalized merchant
names for consistent dictionary, registry and rule matching.
"""
import re
import unicodedata
from typing import Optional

from .models import NormalizedMerchant, TransactionKind

# Monetary amounts (stripped first so their digits don't look like codes)
AMOUNT_PATTERNS = [
    r'[+-]?\s*R\$\s*[\d.,]+',  # R$ 1.234,56
    r'[+-]\s*[\d.,]+',  # signed bare amounts
]

# Bank / payment-rail boilerplate
NOISE_PATTERNS = [
    r'\b(?:PAGAMENTO|RECEBIMENTO)\b\s+PIX\s+\d+',  # PIX with its transaction code
    r'\bPIX\s+(?:DEB|CRED)\b',
    r'\bCOMPRAS?\b\s+NACIONA(?:L|IS)\b',
    r'\bDBR\b|\bVEO\S*\b|\bAUT\s*\d+\b',  # acquirer tokens, authorization codes
    r'\bSAO\s+JOAQUIM\b',
    r'\bDEB(?:ITO)?\b|\bCRED(?:ITO)?\b',
    r'\b\d{10,}\b',  # CPF/CNPJ without punctuation
    r'\b\d{4,8}\b',  # internal codes
    r'[—–-]',  # separators
]

PIX_PREFIX = r'\b(?:PAGAMENTO|RECEBIMENTO)\b\s*PIX\b'
TRANSFER_PREFIX = (
    r'^\s*(?:TRANSFER[EÊ]NCIA|TED|DOC)\b'
    r'(?:\s+(?:RECEBIDA|ENVIADA|PARA|DE|DA|DO|PIX))*'
)

# Tokens that never belong to a merchant's name
NAME_NOISE_PATTERNS = [
    r'\b(?:BR|BRASIL)\b',
    r'\b(?:LOJAS?|NACIONA(?:L|IS))\b',
]

_PIX_KINDS = (TransactionKind.PIX_DEBIT, TransactionKind.PIX_CREDIT)
_TRANSFER_KINDS = (TransactionKind.TRANSFER_IN, TransactionKind.TRANSFER_OUT)


def strip_accents(text: str) -> str:
    """Remove diacritics ('Alimentação' -> 'Alimentacao')"""
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


def title_case(text: str) -> str:
    """Lowercase, then capitalize the first character of every word"""
    return re.sub(r'(^|\s)(\S)', lambda m: m.group(1) + m.group(2).upper(), text.lower()).strip()


def _collapse(text: str) -> str:
    return re.sub(r'\s{2,}', ' ', text).strip()


def extract_merchant(description: Optional[str], kind: Optional[TransactionKind] = None) -> str:
    """
    Strip amounts, bank jargon and codes from a raw description.

    Args:
        description: Raw statement description
        kind: Detected transaction kind (enables per-kind prefix removal)

    Returns:
        The remaining merchant/counterparty fragment (may be empty)
    """
    text = description or ''

    for pattern in AMOUNT_PATTERNS + NOISE_PATTERNS:
        text = re.sub(pattern, ' ', text, flags=re.IGNORECASE)
    text = _collapse(text)

    text = re.sub(PIX_PREFIX, ' ', text, flags=re.IGNORECASE)
    if kind in _PIX_KINDS:
        # Whatever PIX code survived sits at the front
        text = re.sub(r'^\s*\d+\s+', '', text)
    elif kind in _TRANSFER_KINDS:
        text = re.sub(TRANSFER_PREFIX, ' ', text, flags=re.IGNORECASE)

    return _collapse(text)


def normalize_merchant_name(name: str) -> str:
    """Drop generic tokens and title-case ('LOJAS TONIN BR' -> 'Tonin')"""
    text = name or ''
    for pattern in NAME_NOISE_PATTERNS:
        text = re.sub(pattern, ' ', text, flags=re.IGNORECASE)
    return title_case(_collapse(text))


def slugify(text: str) -> str:
    """ASCII, lowercase, hyphen-separated ('Pão de Açúcar' -> 'pao-de-acucar')"""
    slug = re.sub(r'[^a-z0-9]+', '-', strip_accents(text or '').lower())
    return slug.strip('-')


def matching_text(merchant: NormalizedMerchant) -> str:
    """Accent-free, upper-cased canonical name used by the matching stages"""
    return strip_accents(merchant.canonical_name).upper()


def normalize(description: Optional[str], kind: Optional[TransactionKind] = None) -> NormalizedMerchant:
    """
    Normalize a raw statement description into a merchant identity.

    Never raises; an empty canonical name means "unidentified merchant".
    The canonical name is a fixed point: normalizing it again returns it
    unchanged.
    """
    raw_fragment = extract_merchant(description, kind)
    canonical = normalize_merchant_name(raw_fragment)
    # Dropping name noise can bring bank jargon together ('PAGAMENTO BR PIX 1')
    while True:
        again = normalize_merchant_name(extract_merchant(canonical))
        if again == canonical:
            break
        canonical = again
    return NormalizedMerchant(
        raw_fragment=raw_fragment,
        canonical_name=canonical,
        slug=slugify(canonical),
    )
