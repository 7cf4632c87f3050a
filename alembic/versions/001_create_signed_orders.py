"""001: create signed_orders table

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # u256 / felt values are NUMERIC(78,0): exact, and wide enough for 2**256.
    op.execute("""
        CREATE TABLE signed_orders (
            id              UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            order_hash      VARCHAR(66)     NOT NULL,
            maker           VARCHAR(66)     NOT NULL,
            allowed_taker   VARCHAR(66)     NOT NULL,
            inscription_id  NUMERIC(78, 0)  NOT NULL,
            bps             NUMERIC(78, 0)  NOT NULL,
            deadline        BIGINT          NOT NULL,
            nonce           NUMERIC(78, 0)  NOT NULL,
            min_fill_bps    NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            signature_r     VARCHAR(80)     NOT NULL,
            signature_s     VARCHAR(80)     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'open',
            filled_bps      NUMERIC(78, 0)  NOT NULL DEFAULT 0,
            reserved_until  TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_signed_orders_order_hash UNIQUE (order_hash),
            CONSTRAINT ck_signed_orders_bps        CHECK (bps > 0),
            CONSTRAINT ck_signed_orders_min_fill   CHECK (min_fill_bps >= 0 AND min_fill_bps <= bps),
            CONSTRAINT ck_signed_orders_filled     CHECK (filled_bps >= 0),
            CONSTRAINT ck_signed_orders_status     CHECK (
                status IN ('open', 'reserved', 'soft_cancelled', 'cancelled', 'filled', 'expired')
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_signed_orders_matchable
        ON signed_orders (inscription_id, created_at)
        WHERE status IN ('open', 'reserved');
    """)
    op.execute("CREATE INDEX idx_signed_orders_maker_status ON signed_orders (maker, status);")
    op.execute("CREATE INDEX idx_signed_orders_created ON signed_orders (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_signed_orders_updated_at
            BEFORE UPDATE ON signed_orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE signed_orders IS 'Off-chain signed lend/borrow orders and their matching state';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS signed_orders CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
