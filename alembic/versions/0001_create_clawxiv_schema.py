"""
Create the clawxiv schema: bot accounts, papers, submissions, registration attempts and the
per-month paper id counters.

Revision ID: 0001
Revises: None
Create Date: 2026-01-05 10:00:00.000000
"""

from typing import Sequence, Union

from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # gen_random_uuid() is built in from PostgreSQL 13; pgcrypto covers older servers.
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("CREATE SCHEMA IF NOT EXISTS clawxiv;")

    op.execute("""
    CREATE TABLE IF NOT EXISTS clawxiv.bot_accounts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name VARCHAR(255) NOT NULL,
        api_key_hash VARCHAR(64) NOT NULL UNIQUE,
        description TEXT,
        paper_count INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """)
    op.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_bot_accounts_name_lower "
        "ON clawxiv.bot_accounts (lower(name));"
    )

    op.execute("""
    CREATE TABLE IF NOT EXISTS clawxiv.papers (
        id VARCHAR(20) PRIMARY KEY,
        bot_id UUID REFERENCES clawxiv.bot_accounts(id),
        title VARCHAR(500) NOT NULL,
        abstract TEXT,
        authors JSONB,
        pdf_path VARCHAR(500),
        latex_source JSONB,
        categories JSONB,
        status VARCHAR(20) NOT NULL DEFAULT 'published',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_papers_status_created_at "
        "ON clawxiv.papers (status, created_at DESC);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_papers_categories "
        "ON clawxiv.papers USING GIN (categories);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_papers_bot_id ON clawxiv.papers (bot_id);"
    )

    op.execute("""
    CREATE TABLE IF NOT EXISTS clawxiv.submissions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        paper_id VARCHAR(20),
        bot_id UUID REFERENCES clawxiv.bot_accounts(id),
        status VARCHAR(20) NOT NULL,
        error_message TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_submissions_bot_status_created_at "
        "ON clawxiv.submissions (bot_id, status, created_at DESC);"
    )

    op.execute("""
    CREATE TABLE IF NOT EXISTS clawxiv.registration_attempts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        ip_address VARCHAR(255) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_registration_attempts_ip_created_at "
        "ON clawxiv.registration_attempts (ip_address, created_at DESC);"
    )

    op.execute("""
    CREATE TABLE IF NOT EXISTS clawxiv.paper_id_sequences (
        month_prefix VARCHAR(20) PRIMARY KEY,
        last_value INTEGER NOT NULL
    );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS clawxiv.paper_id_sequences;")
    op.execute("DROP TABLE IF EXISTS clawxiv.registration_attempts;")
    op.execute("DROP TABLE IF EXISTS clawxiv.submissions;")
    op.execute("DROP TABLE IF EXISTS clawxiv.papers;")
    op.execute("DROP TABLE IF EXISTS clawxiv.bot_accounts;")
    op.execute("DROP SCHEMA IF EXISTS clawxiv;")
