#!/usr/bin/env python3
"""
Statement classification CLI

Parses a bank statement CSV and categorizes every line.
"""
import argparse
import json
import os
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from statement_categorizer.config import PipelineConfig, load_taxonomy
from statement_categorizer.core.categorization_orchestrator import CategorizationOrchestrator
from statement_categorizer.core.csv_parser import parse_statement_csv
from statement_categorizer.core.errors import CategorizerError
from statement_categorizer.core.llm_categorizer import LLMCategorizer
from statement_categorizer.core.reference_data import StaticDictionaryProvider
from statement_categorizer.logging_setup import configure_logging

# Load environment variables
load_dotenv()


def build_orchestrator(config: PipelineConfig, conn=None) -> CategorizationOrchestrator:
    """Orchestrator backed by the database (conn given) or the built-in tables"""
    if conn is None:
        return CategorizationOrchestrator(config=config, dictionary_provider=StaticDictionaryProvider())

    from statement_categorizer.core.store import (
        PostgresDictionaryProvider,
        PostgresRegistryResolver,
        load_rules_from_db,
    )
    rule_rows = load_rules_from_db(conn)
    print(f"   ✅ Loaded {len(rule_rows)} custom rules")
    return CategorizationOrchestrator(
        config=config,
        dictionary_provider=PostgresDictionaryProvider(conn),
        registry=PostgresRegistryResolver(conn, threshold=config.registry_threshold),
        rule_rows=rule_rows,
    )


def main(argv=None):
    """Main classification function"""
    parser = argparse.ArgumentParser(description='Categorize bank statement transactions')
    parser.add_argument('csv_file', help='Path to statement CSV file')
    parser.add_argument('--db', action='store_true', help='Load dictionary, registry and rules from the database')
    parser.add_argument('--scope', help='Dictionary scope (user id) when using --db')
    parser.add_argument('--llm', action='store_true', help='Refine unresolved records with the LLM (uses API credits)')
    parser.add_argument('--output', help='Write API payloads to this JSON file')
    parser.add_argument('--sample', type=int, default=10, help='Number of results to print (default: 10)')
    parser.add_argument('--log-level', help='Logging level (default: CATEGORIZER_LOG_LEVEL or INFO)')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    csv_path = Path(args.csv_file)
    if not csv_path.exists():
        print(f"❌ File not found: {csv_path}")
        sys.exit(1)

    config = PipelineConfig.from_env()
    if args.scope:
        config = replace(config, dictionary_scope=args.scope)
    enable_llm = args.llm or os.getenv('ENABLE_LLM', 'false').lower() == 'true'

    print("=" * 80)
    print("📥 STATEMENT CLASSIFICATION")
    print("=" * 80)
    print(f"CSV File: {csv_path}")
    print(f"Reference data: {'database (scope ' + config.dictionary_scope + ')' if args.db else 'built-in'}")
    print(f"LLM Enabled: {enable_llm}")
    print("=" * 80)

    conn = None
    if args.db:
        from statement_categorizer.utils.db_connection import get_db_connection
        print("\n🔌 Connecting to database...")
        try:
            conn = get_db_connection()
            print("   ✅ Connected")
        except Exception as e:
            print(f"   ❌ Connection failed: {e}")
            sys.exit(1)

    try:
        print(f"\n📄 Parsing CSV file...")
        records = parse_statement_csv(csv_path)
        print(f"   ✅ Parsed {len(records)} records")

        print(f"\n🧠 Initializing categorization engine...")
        orchestrator = build_orchestrator(config, conn)
        print("   ✅ Ready")

        print(f"\n🏷️  Categorizing {len(records)} transactions...")
        categorized = orchestrator.classify_batch(records)

        if enable_llm:
            llm = LLMCategorizer(load_taxonomy())
            if llm.enabled:
                print(f"\n🤖 Refining unresolved records with the LLM...")
                categorized = llm.refine_fallbacks(categorized)

        orchestrator.print_stats()

        print(f"\n📋 Sample Results (first {args.sample}):")
        for i, rec in enumerate(categorized[:args.sample], 1):
            status = "✅" if rec.confidence >= config.review_threshold else "⚠️ "
            print(f"{status} {i:2d}. {rec.canonical_merchant_name[:40]:<40} → {rec.category}")
            print(f"       R$ {rec.amount:>10.2f}  {' → '.join(rec.evidence_chain):<20}  {rec.confidence:.0%}")

        if len(categorized) > args.sample:
            print(f"       ... and {len(categorized) - args.sample} more")

        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                json.dump([r.to_api_payload() for r in categorized], f, ensure_ascii=False, indent=2)
            print(f"\n💾 Wrote {len(categorized)} records to {args.output}")

    except (CategorizerError, ValueError) as e:
        print(f"\n❌ {e}")
        sys.exit(1)
    finally:
        if conn is not None:
            conn.close()


if __name__ == "__main__":
    main()
