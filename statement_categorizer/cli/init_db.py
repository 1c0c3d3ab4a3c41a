#!/usr/bin/env python3
"""
Database initialization script

Creates the reference tables and seeds them with the built-in merchant
dictionary and business registry.
"""
import argparse
import sys

from dotenv import load_dotenv

from statement_categorizer.config import PipelineConfig
from statement_categorizer.core.entity_resolver import DEFAULT_REGISTRY
from statement_categorizer.core.merchant_dictionary import DEFAULT_DICTIONARY
from statement_categorizer.core.store import seed_reference_tables
from statement_categorizer.logging_setup import configure_logging
from statement_categorizer.utils.db_connection import apply_schema, get_db_connection

# Load environment variables
load_dotenv()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create and seed the reference tables')
    parser.add_argument('--scope', help='Dictionary scope to seed (default: CATEGORIZER_DICTIONARY_SCOPE)')
    parser.add_argument('--no-seed', action='store_true', help='Only create the tables')
    parser.add_argument('--log-level', help='Logging level')

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    scope = args.scope or PipelineConfig.from_env().dictionary_scope

    print("=" * 80)
    print("🗄️  DATABASE INITIALIZATION")
    print("=" * 80)

    try:
        conn = get_db_connection()
        print("✅ Connected to database")
    except Exception as e:
        print(f"❌ Connection failed: {e}")
        sys.exit(1)

    try:
        print("\n📄 Applying schema...")
        apply_schema(conn)
        print("   ✅ Success")

        if not args.no_seed:
            print(f"\n📚 Seeding reference data (scope {scope})...")
            counts = seed_reference_tables(conn, scope, DEFAULT_DICTIONARY, DEFAULT_REGISTRY)
            print(f"   ✅ {counts['registry_entities']} registry entities, "
                  f"{counts['dictionary_entries']} dictionary entries")

        print("\n" + "=" * 80)
        print("✅ Database ready")
        print("=" * 80)
    except Exception as e:
        print(f"\n❌ Initialization failed: {e}")
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
