"""
Keyword-weighted fallback scorer

Every keyword class that matches adds its weight to its category; the
category with the highest total wins. The winner's confidence is capped
below the rule tier so this stage can never outrank a rule or a
dictionary hit.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern

from ..logging_setup import get_logger
from .models import StageMatch

logger = get_logger(__name__)

KEYWORD_CONFIDENCE_CAP = 0.89


@dataclass(frozen=True)
class KeywordWeight:
    regex: Pattern
    category: str
    weight: float


def _kw(pattern: str, category: str, weight: float) -> KeywordWeight:
    return KeywordWeight(re.compile(pattern, re.IGNORECASE), category, weight)


KEYWORD_WEIGHTS: List[KeywordWeight] = [
    _kw(r'POSTO|IPIRANGA|SHELL|RAIZEN|ALE\b|PETROBRAS|INNOVARE', 'Transporte', 1.0),
    _kw(r'MERCADO|SUPERMERC|ATACAD|ASSAI|TONIN|MEDEIROS|RETA|CARREFOUR|EXTRA', 'Alimentação', 0.9),
    _kw(r'VIVO|CLARO|TIM\b|OI\b|WEBCLIX|EMBRATEL|TELEFONICA', 'Serviços', 0.85),
    _kw(r'UBER|99APP|99POP|\b99\b', 'Transporte', 0.8),
    _kw(r'DROGARIA|FARMACIA|LABORATORIO|CLINICA|DROGASIL|PACHECO|PAGUE\s*MENOS', 'Saúde', 0.85),
    _kw(r'PAY|PAYPAL|MERCADO\s*PAGO|GATEWAY|CIELO|STONE|BLUE\s*PAY|NUBANK|INTER|C6', 'Serviços Financeiros', 0.8),
    _kw(r'TELEMARKETING|TOSCANA|CALL\s*CENTER', 'Serviços', 0.75),
    _kw(r'RESTAUR|LANCH|PIZZA|BURGER|IFOOD|PADARIA|PANIFICADORA|DOCERIA|ACOUGUE|HORTIFRUTI', 'Alimentação', 0.7),
    _kw(r'NETFLIX|SPOTIFY|AMAZON|DISNEY|YOUTUBE', 'Entretenimento', 0.7),
    _kw(r'ALUGUEL|CONDOMINIO|ENERGIA|SANEAMENTO|COPEL|SABESP|CEMIG', 'Casa', 0.7),
    _kw(r'ACADEMIA|SMART\s*FIT|ASSINATURA', 'Assinaturas', 0.65),
    _kw(r'MODAS?\b|CALCADOS|CONFEC|VESTUARIO', 'Vestuário', 0.65),
]


def score_keywords(merchant: str,
                   weights: Optional[Iterable[KeywordWeight]] = None,
                   cap: float = KEYWORD_CONFIDENCE_CAP) -> Optional[StageMatch]:
    """
    Score a merchant against the keyword table

    Args:
        merchant: Normalized merchant text
        weights: Keyword table (default: KEYWORD_WEIGHTS)
        cap: Upper bound for the returned confidence

    Returns:
        StageMatch for the best category, or None when nothing matched
    """
    text = merchant or ''
    totals: Dict[str, float] = {}
    for kw in (KEYWORD_WEIGHTS if weights is None else weights):
        if kw.regex.search(text):
            totals[kw.category] = totals.get(kw.category, 0.0) + kw.weight

    if not totals:
        return None

    # Ties go to the category that scored first
    best_category = max(totals, key=lambda c: totals[c])
    best_total = totals[best_category]
    max_total = max(totals.values()) or 1.0
    score = min(cap, best_total / max_total)

    logger.debug("Keyword scores for %r: %s -> %s (%.2f)", merchant, totals, best_category, score)
    return StageMatch(category=best_category, score=score)
