#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# PURPOSE: Deploy the fleet schema (operations, orchestrations, instances)
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment
# ============================================================================

import argparse
import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from repositories.database import DEFAULT_SCHEMA, close_pool, init_pool
from repositories.schema import deploy_schema


async def run(args) -> int:
    pool = await init_pool(min_size=1, max_size=2, connection_string=args.connection)
    try:
        statements = await deploy_schema(pool, args.schema, dry_run=args.dry_run)
    finally:
        await close_pool()

    if args.dry_run:
        for stmt in statements:
            print(stmt + ";")
            print()
        print(f"[DRY RUN] {len(statements)} statements not executed")
    else:
        print(f"Deployed {len(statements)} statements to schema {args.schema}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Deploy the fleet engine schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
        """
    )
    parser.add_argument("--dry-run", action="store_true", help="Print DDL without executing")
    parser.add_argument("--schema", default=DEFAULT_SCHEMA, help=f"Target schema (default: {DEFAULT_SCHEMA})")
    parser.add_argument("--connection", type=str, help="PostgreSQL connection string (overrides environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        return asyncio.run(run(args))
    except Exception as e:
        print(f"Schema deployment failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
