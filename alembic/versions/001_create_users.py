"""001: create users table

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # id is the identity service's user id, never generated here
    op.execute("""
        CREATE TABLE users (
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(32)     NOT NULL,
            surname         VARCHAR(64)     NOT NULL,
            birth_date      DATE            NOT NULL,
            email           VARCHAR(64)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email       UNIQUE (email)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'User profiles: id issued by the identity service';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
