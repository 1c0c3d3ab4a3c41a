"""
LLM Categorizer

Uses Claude API to suggest categories for records the deterministic
pipeline could only send to the default category.
- Sends unresolved records in chunks
- Retries a failed chunk once, halving it when the JSON is unusable
- Never overrides a category the pipeline actually found
"""
import json
import os
import time
from dataclasses import replace
from typing import Dict, List, Optional

import anthropic

from ..config import category_names
from ..logging_setup import get_logger
from .models import CategorizedRecord

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
LLM_CONFIDENCE_CAP = 0.85
STAGE_LLM = 'llm'


class LLMCategorizer:
    """
    Refines fallback records using Claude API
    """

    def __init__(self,
                 taxonomy: Dict,
                 api_key: Optional[str] = None,
                 client=None,
                 model: str = DEFAULT_MODEL,
                 chunk_size: int = 25,
                 pause_seconds: float = 0.5):
        """
        Args:
            taxonomy: Taxonomy dict with a 'categories' list
            api_key: Anthropic API key (or read from ANTHROPIC_API_KEY env var)
            client: Pre-built client exposing messages.create (tests)
            model: Claude model name
            chunk_size: Records per API call
            pause_seconds: Delay between chunks
        """
        self.taxonomy = taxonomy
        self.categories = category_names(taxonomy)
        self.model = model
        self.chunk_size = chunk_size
        self.pause_seconds = pause_seconds

        if client is not None:
            self.client = client
            self.enabled = True
        else:
            self.api_key = api_key or os.environ.get('ANTHROPIC_API_KEY')
            if not self.api_key:
                logger.warning("No ANTHROPIC_API_KEY found. LLM categorization disabled.")
                self.client = None
                self.enabled = False
            else:
                self.client = anthropic.Anthropic(api_key=self.api_key)
                self.enabled = True

        self.taxonomy_str = '\n'.join(
            f"- {c['name']}: {c.get('description', '')}" for c in taxonomy['categories']
        )

    def refine_fallbacks(self, records: List[CategorizedRecord]) -> List[CategorizedRecord]:
        """
        Ask the LLM about records that ended in the default category

        Args:
            records: Output of the orchestrator

        Returns:
            New list, same order. Refined records get the suggested
            category, confidence max(existing, min(suggested, 0.85)) and
            'llm' appended to their evidence chain. Everything else is
            returned as-is.
        """
        pending = [i for i, r in enumerate(records) if r.is_fallback]
        if not self.enabled or not pending:
            return list(records)

        logger.info("Sending %d unresolved records to the LLM", len(pending))
        suggestions = self.categorize_batch([records[i] for i in pending])

        out = list(records)
        refined = 0
        for i, suggestion in zip(pending, suggestions):
            if suggestion is None:
                continue
            record = records[i]
            confidence = max(record.confidence, min(suggestion['confidence'], LLM_CONFIDENCE_CAP))
            out[i] = replace(
                record,
                category=suggestion['category'],
                confidence=confidence,
                evidence_chain=record.evidence_chain + [STAGE_LLM],
            )
            refined += 1

        logger.info("LLM refined %d/%d records", refined, len(pending))
        return out

    def categorize_batch(self, records: List[CategorizedRecord]) -> List[Optional[Dict]]:
        """
        Suggest a category for each record, in chunks

        Returns:
            One validated suggestion (or None) per record, same order
        """
        if not self.enabled or not records:
            return [None] * len(records)

        results: List[Optional[Dict]] = []
        total_chunks = (len(records) + self.chunk_size - 1) // self.chunk_size
        for start in range(0, len(records), self.chunk_size):
            chunk = records[start:start + self.chunk_size]
            chunk_num = start // self.chunk_size + 1
            logger.debug("LLM chunk %d/%d (%d records)", chunk_num, total_chunks, len(chunk))
            results.extend(self._categorize_chunk(chunk, chunk_num))

            if start + self.chunk_size < len(records) and self.pause_seconds > 0:
                time.sleep(self.pause_seconds)
        return results

    def _categorize_chunk(self, records: List[CategorizedRecord], chunk_num: int = 0,
                          retry: int = 0) -> List[Optional[Dict]]:
        try:
            raw = self._ask(self._build_prompt(records))
            return self._parse_results(raw, len(records))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("LLM chunk %d returned unusable JSON: %s", chunk_num, e)
            if retry == 0 and len(records) > 1:
                mid = len(records) // 2
                return (self._categorize_chunk(records[:mid], chunk_num, retry=1)
                        + self._categorize_chunk(records[mid:], chunk_num, retry=1))
            return [None] * len(records)
        except anthropic.APIError as e:
            logger.warning("LLM chunk %d failed: %s", chunk_num, e)
            if retry == 0:
                time.sleep(1)
                return self._categorize_chunk(records, chunk_num, retry=1)
            return [None] * len(records)

    def _build_prompt(self, records: List[CategorizedRecord]) -> str:
        lines = []
        for i, r in enumerate(records):
            lines.append(f"{i+1}. {r.merchant_normalized or r.raw_description} | "
                         f"{r.raw_description} | R$ {abs(r.amount):.2f} | {r.direction.value}")

        return f"""Categorize these {len(records)} Brazilian bank statement transactions. Respond with ONLY a JSON array:

CATEGORIES:
{self.taxonomy_str}

TRANSACTIONS (merchant | description | amount | direction):
{chr(10).join(lines)}

Response format (JSON array only, no markdown, no preamble):
[
  {{"txn": 1, "category": "...", "confidence": 0.8}}
]

Rules:
- Choose ONLY from the categories above
- Include ALL {len(records)} transactions
- confidence 0.0-1.0, lower when uncertain"""

    def _ask(self, prompt: str) -> str:
        message = self.client.messages.create(
            model=self.model,
            max_tokens=2000,
            temperature=0.0,
            messages=[{
                "role": "user",
                "content": prompt
            }]
        )
        return message.content[0].text.strip()

    def _parse_results(self, response_text: str, expected: int) -> List[Optional[Dict]]:
        start_idx = response_text.find('[')
        end_idx = response_text.rfind(']')
        if start_idx == -1 or end_idx == -1:
            raise json.JSONDecodeError("No JSON array found", response_text, 0)

        items = json.loads(response_text[start_idx:end_idx + 1])
        if not isinstance(items, list):
            raise ValueError(f"Expected list, got {type(items).__name__}")

        results: List[Optional[Dict]] = [None] * expected
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                idx = int(item.get('txn', 0)) - 1
            except (TypeError, ValueError):
                continue
            if 0 <= idx < expected:
                results[idx] = self._validate(item)
        return results

    def _validate(self, item: Dict) -> Optional[Dict]:
        category = item.get('category')
        if category not in self.categories:
            logger.warning("LLM suggested invalid category: %r", category)
            return None
        try:
            confidence = max(0.0, min(1.0, float(item.get('confidence', 0.0))))
        except (TypeError, ValueError):
            return None
        return {'category': category, 'confidence': confidence}
