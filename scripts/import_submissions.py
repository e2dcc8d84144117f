#!/usr/bin/env python3
"""
Import clinic preference submissions into Snowflake.

Reads a JSON file holding a list of submission forms (the same fields the
public submission endpoint accepts), validates each one, and upserts it into
the clinic_submissions collection. Running the import twice is safe: a
swimmer's submission always lands on the same document.

Usage:
    python scripts/import_submissions.py --file submissions.json
    python scripts/import_submissions.py --file submissions.json --dry-run
    python scripts/import_submissions.py --init-schema

Requires:
    - .env file with Snowflake credentials
"""

import json
import os
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from clinic_placement.config.settings import get_settings
from clinic_placement.core.errors import ValidationError
from clinic_placement.core.placement.intake import SubmissionForm, build_submission
from clinic_placement.core.placement.models import utc_now
from clinic_placement.infrastructure.documents.client import DocumentStoreError, SnowflakeDocumentStore
from clinic_placement.infrastructure.repositories import SubmissionRepository
from clinic_placement.infrastructure.snowflake.client import (
    SnowflakeConfig,
    SnowflakeConnectionError,
    get_snowflake_connection,
)

FORM_FIELDS = (
    'parent_email',
    'parent_phone',
    'swimmer_name',
    'level',
    'season',
    'preferences',
    'swimmer_id',
)


def load_submissions(filepath: str, default_season: str) -> tuple[list, list[str]]:
    """
    Parse and validate submissions from a JSON file.

    Returns (valid submissions, error messages). Invalid entries are
    reported, not imported.
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        return [], ["File must contain a JSON list of submissions"]

    now = utc_now()
    submissions = []
    errors = []

    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            errors.append(f"#{index}: not an object")
            continue
        form = SubmissionForm(**{name: entry.get(name) for name in FORM_FIELDS})
        try:
            submissions.append(build_submission(form, default_season, now))
        except ValidationError as e:
            errors.append(f"#{index}: {e.message}")

    return submissions, errors


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Import clinic submissions to Snowflake')
    parser.add_argument('--file', help='JSON file with a list of submissions')
    parser.add_argument('--dry-run', action='store_true', help='Validate only, don\'t write')
    parser.add_argument('--init-schema', action='store_true', help='Create the documents table if missing')
    args = parser.parse_args()

    if not args.file and not args.init_schema:
        parser.error('nothing to do: pass --file and/or --init-schema')

    settings = get_settings()

    submissions = []
    if args.file:
        if not os.path.exists(args.file):
            print(f"ERROR: Cannot find {args.file}")
            sys.exit(1)

        print(f"Reading submissions from: {args.file}")
        submissions, errors = load_submissions(args.file, settings.default_season)
        print(f"Valid: {len(submissions)}  Invalid: {len(errors)}")
        for error in errors:
            print(f"[ERR] {error}")

        if args.dry_run:
            print("\n=== DRY RUN - No data will be written ===\n")
            for submission in submissions:
                print(f"Would upsert: {submission.id}")
            sys.exit(0 if not errors else 1)

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        print(f"Connecting to Snowflake account: {config.account}")
        with get_snowflake_connection(config) as conn:
            store = SnowflakeDocumentStore(conn, table=settings.snowflake_documents_table)

            if args.init_schema:
                store.ensure_schema()
                print(f"[OK] Table {settings.snowflake_documents_table} is ready")

            repository = SubmissionRepository(store)
            for submission in submissions:
                repository.save_submission(submission)
                print(f"[OK] Upserted: {submission.id}")
    except (SnowflakeConnectionError, DocumentStoreError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"\n=== Import Complete ===")
    print(f"Upserted: {len(submissions)}")


if __name__ == '__main__':
    main()
