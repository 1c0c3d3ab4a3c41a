"""
PostgreSQL-backed reference data

Store-backed counterparts of the in-memory tables:
- PostgresDictionaryProvider: per-user merchant dictionary (merchant_map)
- PostgresRegistryResolver: registry entities scored with Jaro-Winkler
- load_rules_from_db: custom category rules
- apply_correction: learn a dictionary entry from a user correction
"""
from typing import Dict, Iterable, List, Optional

import psycopg2

from ..logging_setup import get_logger
from .entity_resolver import SIMILARITY_THRESHOLD, best_registry_match
from .errors import RegistryLookupError
from .merchant_normalizer import slugify
from .models import DictionaryEntry, RegistryEntity, RegistryMatch

logger = get_logger(__name__)

DEFAULT_ENTRY_CONFIDENCE = 0.99


class PostgresDictionaryProvider:
    """
    Loads dictionary entries for a user from merchant_map + merchants
    """

    def __init__(self, conn):
        """
        Args:
            conn: Open psycopg2 connection
        """
        self.conn = conn

    def load_dictionary_entries(self, scope_key: str) -> List[DictionaryEntry]:
        cursor = self.conn.cursor()
        try:
            cursor.execute("""
                SELECT mm.pattern_substring, m.nome, mm.registry_id, mm.categoria, mm.confianca
                FROM merchant_map mm
                JOIN merchants m ON mm.merchant_id = m.id
                WHERE mm.user_id = %s
                ORDER BY length(mm.pattern_substring) DESC
            """, (scope_key,))
            rows = cursor.fetchall()
        finally:
            cursor.close()

        entries = [
            DictionaryEntry(
                pattern_substring=row[0],
                canonical_name=row[1] or '',
                registry_id=row[2],
                category=row[3],
                confidence=float(row[4]) if row[4] is not None else DEFAULT_ENTRY_CONFIDENCE,
            )
            for row in rows
        ]
        logger.info("Loaded %d dictionary entries for scope %r", len(entries), scope_key)
        return entries


class PostgresRegistryResolver:
    """
    Resolves merchant names against the registry_entities table

    Rows are snapshotted by refresh(), which ReferenceData.load calls at the
    start of every batch. A resolver that was never refreshed loads on
    first use.
    """

    def __init__(self, conn, threshold: float = SIMILARITY_THRESHOLD):
        self.conn = conn
        self.threshold = threshold
        self._entities: Optional[List[RegistryEntity]] = None

    def refresh(self):
        """
        Re-read registry_entities now

        Raises:
            RegistryLookupError: the query failed (the previous rows are kept)
        """
        cursor = self.conn.cursor()
        try:
            cursor.execute("""
                SELECT registry_id, display_name, legal_name, activity_code
                FROM registry_entities
            """)
            rows = cursor.fetchall()
        except psycopg2.Error as e:
            raise RegistryLookupError(f"Registry query failed: {e}") from e
        finally:
            cursor.close()
        self._entities = [RegistryEntity(row[0], row[1] or '', row[2] or '', row[3] or '') for row in rows]
        logger.info("Loaded %d registry entities", len(self._entities))

    def resolve_by_name(self, name: str) -> Optional[RegistryMatch]:
        if self._entities is None:
            self.refresh()
        return best_registry_match(name, self._entities, self.threshold)


def load_rules_from_db(conn) -> List[Dict]:
    """Load active category rules"""
    cursor = conn.cursor()
    try:
        cursor.execute("""
            SELECT rule_id, priority, match_type, match_value, kind,
                   category, merchant_name, score, is_active
            FROM category_rules
            WHERE is_active = TRUE
            ORDER BY priority, rule_id
        """)
        rows = cursor.fetchall()
    finally:
        cursor.close()

    return [
        {
            'rule_id': row[0],
            'priority': row[1],
            'match_type': row[2],
            'match_value': row[3],
            'kind': row[4],
            'category': row[5],
            'merchant_name': row[6],
            'score': float(row[7]) if row[7] is not None else None,
            'is_active': row[8],
        }
        for row in rows
    ]


def apply_correction(conn,
                     scope_key: str,
                     pattern_substring: str,
                     canonical_name: str,
                     category: Optional[str] = None,
                     registry_id: Optional[str] = None,
                     confidence: float = DEFAULT_ENTRY_CONFIDENCE,
                     created_by: Optional[str] = None) -> int:
    """
    Record a user correction as a dictionary entry

    Makes sure a merchant exists for the canonical name's slug, then maps
    the pattern to it (replacing any previous mapping of that pattern).

    Returns:
        The merchant id

    Raises:
        ValueError: pattern or canonical name is empty
    """
    pattern = (pattern_substring or '').strip()
    name = (canonical_name or '').strip()
    if not pattern or not name:
        raise ValueError("pattern_substring and canonical_name are required")

    slug = slugify(name)
    cursor = conn.cursor()
    try:
        cursor.execute("""
            SELECT id FROM merchants WHERE user_id = %s AND slug = %s
        """, (scope_key, slug))
        row = cursor.fetchone()

        if row:
            merchant_id = row[0]
        else:
            cursor.execute("""
                INSERT INTO merchants (user_id, slug, nome, registry_id)
                VALUES (%s, %s, %s, %s)
                RETURNING id
            """, (scope_key, slug, name, registry_id))
            merchant_id = cursor.fetchone()[0]
            logger.info("Created merchant %s (id %s)", name, merchant_id)

        cursor.execute("""
            INSERT INTO merchant_map (user_id, pattern_substring, merchant_id, registry_id,
                                      categoria, confianca, criado_por)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, pattern_substring) DO UPDATE
            SET merchant_id = EXCLUDED.merchant_id,
                registry_id = EXCLUDED.registry_id,
                categoria = EXCLUDED.categoria,
                confianca = EXCLUDED.confianca,
                criado_por = EXCLUDED.criado_por
        """, (scope_key, pattern, merchant_id, registry_id, category, confidence, created_by or scope_key))

        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()

    logger.info("Correction applied: %r -> %s (%s)", pattern, name, category)
    return merchant_id


def seed_reference_tables(conn,
                          scope_key: str,
                          entries: Iterable[DictionaryEntry],
                          entities: Iterable[RegistryEntity]) -> Dict[str, int]:
    """Load the built-in dictionary and registry into an empty store"""
    cursor = conn.cursor()
    try:
        entity_count = 0
        for entity in entities:
            cursor.execute("""
                INSERT INTO registry_entities (registry_id, display_name, legal_name, activity_code)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (registry_id) DO NOTHING
            """, (entity.registry_id, entity.display_name, entity.legal_name, entity.activity_code))
            entity_count += 1
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()

    entry_count = 0
    for entry in entries:
        apply_correction(conn, scope_key, entry.pattern_substring, entry.canonical_name,
                         category=entry.category, registry_id=entry.registry_id,
                         confidence=entry.confidence, created_by='seed')
        entry_count += 1

    return {'registry_entities': entity_count, 'dictionary_entries': entry_count}
