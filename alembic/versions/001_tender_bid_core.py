"""Tender and bid lifecycle tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates: vendors, tenders, bids, tender_transitions, event_outbox
Enums: tenderstatus, tendertransitiontype, bidstatus, bidrecommendation, eventstatus
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    # ── 1. Create enum types ──────────────────────────────────────────────
    op.execute("""
        CREATE TYPE tenderstatus AS ENUM (
            'OPEN', 'UNDER_REVIEW', 'CLOSED', 'AWARDED', 'CANCELLED'
        );
    """)
    op.execute("""
        CREATE TYPE tendertransitiontype AS ENUM (
            'START_REVIEW', 'CLOSE', 'AWARD', 'CANCEL'
        );
    """)
    op.execute("""
        CREATE TYPE bidstatus AS ENUM (
            'DRAFT', 'SUBMITTED', 'UNDER_REVIEW', 'TECHNICAL_EVALUATION',
            'FINANCIAL_EVALUATION', 'AWARDED', 'REJECTED'
        );
    """)
    op.execute("""
        CREATE TYPE bidrecommendation AS ENUM (
            'AWARD', 'SHORTLIST', 'REJECT', 'NONE'
        );
    """)
    op.execute("""
        CREATE TYPE eventstatus AS ENUM (
            'PENDING', 'PROCESSING', 'COMPLETED', 'FAILED'
        );
    """)

    # ── 2. Create vendors table ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE vendors (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            business_name VARCHAR(255) NOT NULL,
            email VARCHAR(255),
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_vendors_business_name ON vendors (business_name);")

    # ── 3. Create tenders table ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE tenders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(255) NOT NULL,
            category VARCHAR(100) NOT NULL,
            description TEXT NOT NULL,
            location VARCHAR(255),
            budget NUMERIC(15,2) NOT NULL,
            deadline TIMESTAMPTZ NOT NULL,
            status tenderstatus NOT NULL DEFAULT 'OPEN',
            tech_score_weight INTEGER NOT NULL DEFAULT 70,
            financial_score_weight INTEGER NOT NULL DEFAULT 30,
            created_by UUID,
            awarded_to UUID REFERENCES vendors(id) ON DELETE SET NULL,
            awarded_bid_id UUID,
            awarded_amount NUMERIC(15,2),
            awarded_at TIMESTAMPTZ,
            closed_at TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            cancellation_reason TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_tenders_budget_positive CHECK (budget > 0),
            CONSTRAINT ck_tenders_weights_sum_100
                CHECK (tech_score_weight + financial_score_weight = 100),
            CONSTRAINT ck_tenders_awarded_to_iff_awarded
                CHECK ((status = 'AWARDED') = (awarded_to IS NOT NULL))
        );
    """)
    op.execute("CREATE INDEX ix_tenders_status ON tenders (status);")
    op.execute("CREATE INDEX ix_tenders_deadline_open ON tenders (deadline, status);")
    op.execute(
        "CREATE INDEX ix_tenders_sweep ON tenders (deadline)"
        " WHERE status = 'OPEN';"
    )

    # ── 4. Create bids table ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE bids (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tender_id UUID NOT NULL REFERENCES tenders(id) ON DELETE CASCADE,
            vendor_id UUID NOT NULL REFERENCES vendors(id) ON DELETE CASCADE,
            bid_amount NUMERIC(15,2) NOT NULL DEFAULT 0,
            proposal TEXT NOT NULL DEFAULT '',
            status bidstatus NOT NULL DEFAULT 'DRAFT',
            documents JSONB NOT NULL DEFAULT '[]',
            technical_score INTEGER,
            financial_score INTEGER,
            total_score DOUBLE PRECISION,
            evaluation_comments TEXT,
            recommendation bidrecommendation NOT NULL DEFAULT 'NONE',
            submitted_at TIMESTAMPTZ,
            evaluated_at TIMESTAMPTZ,
            awarded_at TIMESTAMPTZ,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_bids_tender_vendor UNIQUE (tender_id, vendor_id),
            CONSTRAINT ck_bids_amount_non_negative CHECK (bid_amount >= 0),
            CONSTRAINT ck_bids_technical_score_range
                CHECK (technical_score IS NULL OR (technical_score >= 0 AND technical_score <= 100)),
            CONSTRAINT ck_bids_financial_score_range
                CHECK (financial_score IS NULL OR (financial_score >= 0 AND financial_score <= 100))
        );
    """)
    op.execute("CREATE INDEX ix_bids_tender_id ON bids (tender_id);")
    op.execute("CREATE INDEX ix_bids_vendor_id ON bids (vendor_id);")
    op.execute("CREATE INDEX ix_bids_status ON bids (status);")

    # ── 5. Create tender_transitions table ───────────────────────────────
    op.execute("""
        CREATE TABLE tender_transitions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tender_id UUID NOT NULL REFERENCES tenders(id) ON DELETE CASCADE,
            from_status tenderstatus NOT NULL,
            to_status tenderstatus NOT NULL,
            transition_type tendertransitiontype NOT NULL,
            triggered_by UUID,
            trigger_source VARCHAR(20) NOT NULL DEFAULT 'USER',
            reason TEXT,
            metadata_extra JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_tender_transitions_tender_id ON tender_transitions (tender_id);")
    op.execute("CREATE INDEX ix_tender_transitions_to_status ON tender_transitions (to_status);")

    # ── 6. Create event_outbox table ─────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(255) NOT NULL,
            aggregate_type VARCHAR(255) NOT NULL,
            aggregate_id VARCHAR(255) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            status eventstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            processed_at TIMESTAMPTZ,
            schema_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_event_outbox_status ON event_outbox (status);")
    op.execute("CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);")
    op.execute("CREATE INDEX ix_event_outbox_pending ON event_outbox (created_at) WHERE status = 'PENDING';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS event_outbox;")
    op.execute("DROP TABLE IF EXISTS tender_transitions;")
    op.execute("DROP TABLE IF EXISTS bids;")
    op.execute("DROP TABLE IF EXISTS tenders;")
    op.execute("DROP TABLE IF EXISTS vendors;")

    op.execute("DROP TYPE IF EXISTS eventstatus;")
    op.execute("DROP TYPE IF EXISTS bidrecommendation;")
    op.execute("DROP TYPE IF EXISTS bidstatus;")
    op.execute("DROP TYPE IF EXISTS tendertransitiontype;")
    op.execute("DROP TYPE IF EXISTS tenderstatus;")
