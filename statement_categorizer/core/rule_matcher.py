"""
Rule Matcher Engine

Deterministic category rules, evaluated in order (first match wins):
- Built-in keyword-class rules (fuel, supermarkets, telecom, ...)
- Custom rules loaded from the store, with match types
  exact, contains, startswith, regex, and an optional transaction kind
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..logging_setup import get_logger
from .merchant_normalizer import strip_accents
from .models import StageMatch, TransactionKind

logger = get_logger(__name__)

DEFAULT_RULE_SCORE = 0.9


@dataclass(frozen=True)
class CategoryRule:
    """Predicate over (merchant text, kind) mapped to a category"""
    test: Callable[[str, TransactionKind], bool]
    category: str
    score: float = DEFAULT_RULE_SCORE
    name: Optional[str] = None  # canonical merchant name, if the rule knows it
    rule_id: Optional[str] = None


def keyword_rule(pattern: str, category: str, score: float, rule_id: str) -> CategoryRule:
    """Rule that fires when `pattern` is found anywhere in the merchant text"""
    regex = re.compile(pattern, re.IGNORECASE)
    return CategoryRule(
        test=lambda merchant, kind: bool(regex.search(merchant)),
        category=category,
        score=score,
        rule_id=rule_id,
    )


DEFAULT_RULES: List[CategoryRule] = [
    keyword_rule(r'POSTO|IPIRANGA|SHELL|RAIZEN|ALE\b|PETROBRAS|INNOVARE',
                 'Transporte', 0.93, 'fuel'),
    keyword_rule(r'MERCADO|SUPERMERC|ATACAD|ASSAI|TONIN|MEDEIROS|RETA|CARREFOUR|EXTRA|WALMART',
                 'Alimentação', 0.92, 'supermarket'),
    keyword_rule(r'VIVO|CLARO|TIM\b|OI\b|ALGAR|NEXTEL|WEBCLIX|EMBRATEL|TELEFONICA',
                 'Serviços', 0.92, 'telecom'),
    keyword_rule(r'UBER|99APP|99POP|BUSER|\b99\b',
                 'Transporte', 0.9, 'ride_hailing'),
    keyword_rule(r'PAY|PAGAR\.ME|CIELO|STONE|RECEBIVEIS|GATEWAY|PAYPAL|MERCADO\s*PAGO|BLUE\s*PAY|NUBANK|INTER|C6',
                 'Serviços Financeiros', 0.9, 'payment_processor'),
    keyword_rule(r'LANCH|RESTAUR|PIZZA|BURGER|SUBWAY|MC\s*DONALD|BK\b|IFOOD',
                 'Alimentação', 0.88, 'restaurant'),
    keyword_rule(r'DROGARIA|FARMACIA|LABORATORIO|CLINICA|HOSPITAL|MEDIC|DROGASIL|PACHECO|PAGUE\s*MENOS',
                 'Saúde', 0.9, 'pharmacy'),
    keyword_rule(r'TELEMARKETING|TOSCANA|CALL\s*CENTER',
                 'Serviços', 0.85, 'call_center'),
    keyword_rule(r'NETFLIX|SPOTIFY|AMAZON|DISNEY|YOUTUBE|MICROSOFT|ADOBE|GOOGLE|APPLE',
                 'Entretenimento', 0.87, 'streaming'),
    keyword_rule(r'UNIVERSIDADE|FACULDADE|ESCOLA|ESTACIO|UNOPAR|ANHANGUERA|UNIP|KROTON',
                 'Educação', 0.85, 'education'),
]


def _match_value(match_type: str, match_value: str, merchant: str) -> bool:
    merchant = strip_accents(merchant).upper()
    if match_type == 'exact':
        return merchant == match_value
    if match_type == 'contains':
        return match_value in merchant
    if match_type == 'startswith':
        return merchant.startswith(match_value)
    if match_type == 'regex':
        return bool(re.search(match_value, merchant, re.IGNORECASE))
    return False


def rule_from_dict(rule: Dict) -> Optional[CategoryRule]:
    """
    Build a CategoryRule from a stored rule row

    Expected dict structure:
    {
        'rule_id': int,
        'priority': int,
        'match_type': str,  # 'exact', 'contains', 'startswith', 'regex'
        'match_value': str,
        'kind': str (optional),  # only fire for this TransactionKind value
        'category': str,
        'merchant_name': str (optional),
        'score': float (optional),
        'is_active': bool,
    }

    Returns None (and logs) for rules that can never be evaluated.
    """
    match_type = rule.get('match_type', 'contains')
    match_value = (rule.get('match_value') or '').strip()
    if match_type != 'regex':
        match_value = strip_accents(match_value).upper()
    if not match_value or not rule.get('category'):
        logger.warning("Skipping incomplete rule %s", rule.get('rule_id'))
        return None
    if match_type not in ('exact', 'contains', 'startswith', 'regex'):
        logger.warning("Skipping rule %s: unknown match type %r", rule.get('rule_id'), match_type)
        return None
    if match_type == 'regex':
        try:
            re.compile(match_value)
        except re.error:
            logger.warning("Invalid regex in rule %s: %s", rule.get('rule_id'), match_value)
            return None

    kind = rule.get('kind')
    if kind:
        try:
            kind = TransactionKind(kind)
        except ValueError:
            logger.warning("Skipping rule %s: unknown kind %r", rule.get('rule_id'), kind)
            return None

    def test(merchant: str, txn_kind: TransactionKind) -> bool:
        if kind and txn_kind != kind:
            return False
        return _match_value(match_type, match_value, merchant)

    return CategoryRule(
        test=test,
        category=rule['category'],
        score=float(rule.get('score') or DEFAULT_RULE_SCORE),
        name=rule.get('merchant_name'),
        rule_id=str(rule.get('rule_id')),
    )


class RuleMatcher:
    """
    Matches merchants against category rules
    """

    def __init__(self, rules: Optional[List[CategoryRule]] = None):
        """
        Args:
            rules: Built-in rule list (default: DEFAULT_RULES)
        """
        self.base_rules = list(DEFAULT_RULES if rules is None else rules)
        self.custom_rules: List[CategoryRule] = []
        self.stats = {
            'matches': 0,
            'no_match': 0,
            'by_rule': {},
        }

    @property
    def rules(self) -> List[CategoryRule]:
        """Evaluation order: custom rules first, then built-ins"""
        return self.custom_rules + self.base_rules

    def load_rules(self, rules: List[Dict]):
        """
        Load custom rules (from the store or a list of dicts)

        Inactive rules are dropped; the rest are sorted by priority
        (lower = evaluated earlier), then rule_id.
        """
        active = [r for r in rules if r.get('is_active', True)]
        active.sort(key=lambda r: (r.get('priority', 100), str(r.get('rule_id', ''))))

        self.custom_rules = [c for c in (rule_from_dict(r) for r in active) if c is not None]
        logger.info("Loaded %d active custom rules", len(self.custom_rules))

    def match_rules(self, merchant: str, kind: TransactionKind = TransactionKind.OTHER) -> Optional[StageMatch]:
        """
        Categorize a merchant using rules

        Args:
            merchant: Normalized merchant text
            kind: Transaction kind

        Returns:
            StageMatch from the first rule that fires, or None
        """
        text = merchant or ''
        if not text.strip():
            self.stats['no_match'] += 1
            return None

        for rule in self.rules:
            if rule.test(text, kind):
                self.stats['matches'] += 1
                key = rule.rule_id or rule.category
                self.stats['by_rule'][key] = self.stats['by_rule'].get(key, 0) + 1
                logger.debug("Rule %s matched %r -> %s", key, merchant, rule.category)
                return StageMatch(category=rule.category, score=rule.score, name=rule.name)

        self.stats['no_match'] += 1
        return None

    def print_stats(self):
        """Print matching statistics"""
        total = self.stats['matches'] + self.stats['no_match']
        if total == 0:
            print("No merchants processed yet")
            return

        print("\n" + "=" * 80)
        print("📊 RULE MATCHER STATISTICS")
        print("=" * 80)
        print(f"Total merchants: {total}")
        print(f"  ✅ Matched: {self.stats['matches']} ({self.stats['matches']/total*100:.1f}%)")
        print(f"  ❌ No match: {self.stats['no_match']} ({self.stats['no_match']/total*100:.1f}%)")

        if self.stats['by_rule']:
            print(f"\nMatches by rule:")
            for rule_id, count in sorted(self.stats['by_rule'].items(),
                                         key=lambda x: x[1], reverse=True):
                print(f"  • {rule_id}: {count}")
        print("=" * 80)
