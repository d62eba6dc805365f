#!/usr/bin/env python3
"""
Create the Snowflake table that holds form submissions.

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --dry-run

Requires:
    - .env file (or environment) with Snowflake credentials
"""

import sys
from pathlib import Path

# Make the package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def main():
    import argparse

    from mediaform.api.dependencies import snowflake_config_from
    from mediaform.config.settings import Settings
    from mediaform.infrastructure.snowflake.client import (
        SnowflakeConnectionError,
        create_snowflake_connection,
    )
    from mediaform.infrastructure.snowflake.repositories.forms import (
        CREATE_TABLE_SQL,
        FormRepository,
    )

    parser = argparse.ArgumentParser(description='Create the form_submissions table')
    parser.add_argument('--dry-run', action='store_true', help='Print the DDL, don\'t run it')
    args = parser.parse_args()

    if args.dry_run:
        print("=== DRY RUN - DDL that would be executed ===")
        print(CREATE_TABLE_SQL)
        sys.exit(0)

    settings = Settings()

    if not settings.snowflake_account or not settings.snowflake_user:
        print("ERROR: Missing SNOWFLAKE_ACCOUNT or SNOWFLAKE_USER")
        sys.exit(1)

    config = snowflake_config_from(settings)

    print(f"Connecting to Snowflake account: {config.account}")
    try:
        with create_snowflake_connection(config=config) as conn:
            FormRepository(conn).create_table()
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        sys.exit(1)

    print(f"Table form_submissions ready in {config.database}.{config.schema}")


if __name__ == '__main__':
    main()
