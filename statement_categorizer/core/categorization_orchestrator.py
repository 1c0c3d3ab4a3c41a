"""
Categorization Orchestrator

The main engine that turns raw statement lines into categorized records.
Stages run in strict priority order, stopping once a category is locked:
1. Merchant dictionary (deterministic, highest confidence)
2. Registry resolution (fuzzy name match -> activity code -> category)
3. Deterministic keyword rules
4. Keyword-weighted scoring
5. Default category

Each record carries the ordered list of stages that contributed to it.
"""
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..config import PipelineConfig
from ..logging_setup import get_logger
from .activity_codes import category_for_activity_code
from .keyword_scorer import score_keywords
from .merchant_normalizer import matching_text, normalize
from .models import CategorizedRecord, RawRecord, RegistryMatch, parse_amount, raw_record_from_mapping
from .reference_data import DictionaryProvider, ReferenceData
from .entity_resolver import RegistryResolver
from .transaction_type import apply_direction_sign, derive_direction, detect_kind

logger = get_logger(__name__)

STAGE_DICTIONARY = 'dictionary'
STAGE_REGISTRY = 'registry'
STAGE_RULE = 'rule'
STAGE_KEYWORD = 'keyword'
STAGE_FALLBACK = 'fallback'
STAGE_ERROR = 'error'

RecordInput = Union[RawRecord, Mapping[str, Any]]


class CategorizationOrchestrator:
    """
    Orchestrates transaction categorization across all stages
    """

    def __init__(self,
                 config: Optional[PipelineConfig] = None,
                 reference: Optional[ReferenceData] = None,
                 dictionary_provider: Optional[DictionaryProvider] = None,
                 registry: Optional[RegistryResolver] = None,
                 rule_rows: Optional[List[Dict]] = None):
        """
        Args:
            config: Pipeline thresholds (default: PipelineConfig())
            reference: Pre-built reference snapshot, used as-is
            dictionary_provider: Dictionary source; when given, reference
                data is loaded now and reloaded at the start of every batch
            registry: Registry resolver; refreshed now and at the start of
                every batch (default: built-in registry)
            rule_rows: Custom rule rows placed ahead of the built-in rules

        Raises:
            TypeError: `reference` combined with the arguments it replaces
            ReferenceDataError: initial load of the dictionary or registry failed
        """
        if reference is not None and any(a is not None for a in (dictionary_provider, registry, rule_rows)):
            raise TypeError("reference cannot be combined with dictionary_provider, registry or rule_rows")

        self.config = config or PipelineConfig()
        self.dictionary_provider = dictionary_provider
        self.registry = registry
        self.rule_rows = rule_rows

        if reference is not None:
            self.reference = reference
        elif dictionary_provider is not None:
            self.reference = self.reload()
        else:
            self.reference = ReferenceData.default(self.config, registry=registry, rule_rows=rule_rows)

        self.stats = {
            'total': 0,
            STAGE_DICTIONARY: 0,
            STAGE_REGISTRY: 0,
            STAGE_RULE: 0,
            STAGE_KEYWORD: 0,
            STAGE_FALLBACK: 0,
            'registry_errors': 0,
            'errors': 0,
            'needs_review': 0,
        }

    def reload(self) -> ReferenceData:
        """
        Take a fresh reference snapshot

        Re-reads the dictionary provider and refreshes the registry. A
        snapshot passed in as `reference` is kept as-is.
        """
        if self.dictionary_provider is not None:
            self.reference = ReferenceData.load(
                self.dictionary_provider,
                registry=self.registry,
                config=self.config,
                rule_rows=self.rule_rows,
            )
        elif self.registry is not None:
            self.reference = ReferenceData.default(self.config, registry=self.registry, rule_rows=self.rule_rows)
        return self.reference

    def classify(self, record: RecordInput) -> CategorizedRecord:
        """
        Categorize a single record

        Args:
            record: RawRecord (or a mapping with date/description/amount)

        Returns:
            CategorizedRecord with full provenance in `evidence_chain`
        """
        return self._classify(record, self.reference)

    def classify_batch(self, records: Iterable[RecordInput]) -> List[CategorizedRecord]:
        """
        Categorize records one by one

        A failing record never aborts the batch: it is replaced by a
        minimal record with the default category and evidence ['error'].
        Reference data is snapshotted once, before the first record.

        Raises:
            ReferenceDataError: the reference snapshot could not be loaded
        """
        reference = self.reload()
        records = list(records)
        logger.info("Classifying batch of %d records", len(records))

        out = []
        for i, record in enumerate(records):
            try:
                out.append(self._classify(record, reference))
            except Exception:
                logger.exception("Failed to classify record %d: %r", i, _description_of(record))
                self.stats['errors'] += 1
                out.append(self._error_record(record))

            if self.config.throttle_seconds > 0 and i + 1 < len(records):
                time.sleep(self.config.throttle_seconds)

        logger.info("Batch done: %d records, %d errors", len(out),
                    sum(1 for r in out if r.evidence_chain == [STAGE_ERROR]))
        return out

    def _classify(self, record: RecordInput, reference: ReferenceData) -> CategorizedRecord:
        if isinstance(record, Mapping):
            record = raw_record_from_mapping(record)

        cfg = self.config
        description = record.description or ''
        amount = parse_amount(record.amount)

        kind = detect_kind(description, amount)
        direction = derive_direction(kind, amount)
        merchant = normalize(description, kind)
        text = matching_text(merchant)

        evidence: List[str] = []
        canonical = merchant.canonical_name
        category: Optional[str] = None
        registry_id: Optional[str] = None
        confidence = 0.0

        # 1) Dictionary
        hit = reference.dictionary.lookup(text)
        if hit and hit.score > cfg.dictionary_accept_threshold:
            category = hit.category or category
            registry_id = hit.registry_id or registry_id
            canonical = hit.name or canonical
            confidence = max(confidence, hit.score)
            evidence.append(STAGE_DICTIONARY)

        # 2) Registry + activity code
        if category is None or confidence < cfg.dictionary_skip_threshold:
            match = self._resolve(reference, merchant.canonical_name)
            if match is not None and match.score >= cfg.registry_threshold:
                registry_id = match.registry_id
                canonical = match.display_name or canonical
                by_code = category_for_activity_code(match.activity_code, reference.activity_codes)
                if by_code:
                    category = by_code
                confidence = max(confidence, match.score)
                evidence.append(STAGE_REGISTRY)

        # 3) Rules
        if category is None:
            rule = reference.rules.match_rules(text, kind)
            if rule:
                category = rule.category
                canonical = rule.name or canonical
                confidence = max(confidence, rule.score)
                evidence.append(STAGE_RULE)

        # 4) Keyword scoring
        if category is None:
            scored = score_keywords(text, reference.keyword_weights, cfg.keyword_confidence_cap)
            if scored:
                category = scored.category
                confidence = max(confidence, scored.score)
                evidence.append(STAGE_KEYWORD)

        # 5) Default
        if category is None:
            category = cfg.default_category
            confidence = max(confidence, cfg.default_confidence)
            evidence.append(STAGE_FALLBACK)

        result = CategorizedRecord(
            date=record.date,
            raw_description=description,
            merchant_raw=merchant.raw_fragment,
            merchant_normalized=merchant.canonical_name,
            merchant_slug=merchant.slug,
            kind=kind,
            direction=direction,
            amount=apply_direction_sign(direction, amount),
            category=category,
            registry_id=registry_id,
            canonical_merchant_name=canonical,
            confidence=confidence,
            evidence_chain=evidence,
        )
        self._count(result)
        logger.debug("%r -> %s | %s | %.0f%% | %s", description, canonical, category,
                     confidence * 100, ' → '.join(evidence))
        return result

    def _resolve(self, reference: ReferenceData, name: str) -> Optional[RegistryMatch]:
        """Registry lookup; backend failures count as 'no match'"""
        if not name:
            return None
        try:
            return reference.registry.resolve_by_name(name)
        except Exception as e:
            self.stats['registry_errors'] += 1
            logger.warning("Registry lookup failed for %r: %s", name, e)
            return None

    def _error_record(self, record: Any) -> CategorizedRecord:
        """Best-effort record for an item that could not be classified"""
        if isinstance(record, Mapping):
            description = str(record.get('description') or '')
            raw_amount = record.get('amount')
            date = str(record.get('date') or '')
        else:
            description = str(getattr(record, 'description', '') or '')
            raw_amount = getattr(record, 'amount', None)
            date = str(getattr(record, 'date', '') or '')

        amount = parse_amount(raw_amount)
        kind = detect_kind(description, amount)
        direction = derive_direction(kind, amount)
        merchant = normalize(description, kind)
        return CategorizedRecord(
            date=date,
            raw_description=description,
            merchant_raw=merchant.raw_fragment or description,
            merchant_normalized=merchant.canonical_name or description,
            merchant_slug=merchant.slug,
            kind=kind,
            direction=direction,
            amount=apply_direction_sign(direction, amount),
            category=self.config.default_category,
            registry_id=None,
            canonical_merchant_name=merchant.canonical_name or description,
            confidence=self.config.error_confidence,
            evidence_chain=[STAGE_ERROR],
        )

    def _count(self, result: CategorizedRecord):
        self.stats['total'] += 1
        for stage in result.evidence_chain:
            if stage in self.stats:
                self.stats[stage] += 1
        if result.confidence < self.config.review_threshold:
            self.stats['needs_review'] += 1

    def print_stats(self):
        """Print categorization statistics"""
        total = self.stats['total']
        if total == 0:
            print("No transactions categorized yet")
            return

        print("\n" + "=" * 80)
        print("📊 CATEGORIZATION STATISTICS")
        print("=" * 80)
        print(f"Total transactions: {total}")
        print(f"\n✅ Contributing stages:")
        for stage in (STAGE_DICTIONARY, STAGE_REGISTRY, STAGE_RULE, STAGE_KEYWORD, STAGE_FALLBACK):
            print(f"  • {stage}: {self.stats[stage]} ({self.stats[stage]/total*100:.1f}%)")

        print(f"\n📋 Review Status:")
        print(f"  • Below {self.config.review_threshold*100:.0f}% confidence: {self.stats['needs_review']}")
        if self.stats['registry_errors']:
            print(f"  • Registry lookup failures: {self.stats['registry_errors']}")
        if self.stats['errors']:
            print(f"  • Records that failed: {self.stats['errors']}")
        print("=" * 80)


def _description_of(record: Any) -> str:
    if isinstance(record, Mapping):
        return str(record.get('description', ''))
    return str(getattr(record, 'description', ''))
