#!/usr/bin/env python3
"""
Correction CLI

Teaches the merchant dictionary a new pattern after a user fixes a
categorization.
"""
import argparse
import sys

from dotenv import load_dotenv

from statement_categorizer.config import PipelineConfig, category_names, load_taxonomy
from statement_categorizer.core.store import apply_correction
from statement_categorizer.logging_setup import configure_logging
from statement_categorizer.utils.db_connection import get_db_connection

# Load environment variables
load_dotenv()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Record a merchant correction in the dictionary')
    parser.add_argument('pattern', help='Substring of the statement description, e.g. "TONIN"')
    parser.add_argument('canonical_name', help='Merchant name to map the pattern to')
    parser.add_argument('--category', help='Category to lock for this merchant')
    parser.add_argument('--registry-id', help='Business registry id of the merchant')
    parser.add_argument('--scope', help='Dictionary scope (user id)')
    parser.add_argument('--confidence', type=float, default=0.99, help='Entry confidence (default: 0.99)')
    parser.add_argument('--log-level', help='Logging level')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.category and args.category not in category_names(load_taxonomy()):
        print(f"❌ Unknown category: {args.category}")
        sys.exit(1)

    scope = args.scope or PipelineConfig.from_env().dictionary_scope

    try:
        conn = get_db_connection()
    except Exception as e:
        print(f"❌ Connection failed: {e}")
        sys.exit(1)

    try:
        merchant_id = apply_correction(
            conn,
            scope,
            args.pattern.upper(),
            args.canonical_name,
            category=args.category,
            registry_id=args.registry_id,
            confidence=args.confidence,
        )
        print(f"✅ {args.pattern.upper()} → {args.canonical_name} (merchant {merchant_id}, scope {scope})")
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
