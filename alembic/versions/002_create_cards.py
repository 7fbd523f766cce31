"""002: create cards table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE cards (
            id                  BIGSERIAL       PRIMARY KEY,
            number              VARCHAR(32)     NOT NULL,
            holder              VARCHAR(32)     NOT NULL,
            expiration_date     DATE            NOT NULL,
            user_id             VARCHAR(64)     NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_cards_number      UNIQUE (number),
            CONSTRAINT fk_cards_user_id     FOREIGN KEY (user_id)
                REFERENCES users (id) ON DELETE CASCADE
        );
    """)
    op.execute("CREATE INDEX idx_cards_user_id ON cards (user_id);")
    op.execute("""
        CREATE TRIGGER trg_cards_updated_at
            BEFORE UPDATE ON cards
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE cards IS 'Payment cards: owner (user_id) is immutable';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cards CASCADE;")
