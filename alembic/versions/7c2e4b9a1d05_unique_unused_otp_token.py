"""unique unused otp token per email and purpose

Revision ID: 7c2e4b9a1d05
Revises: 3f1a9c2d7b10
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "7c2e4b9a1d05"
down_revision = "3f1a9c2d7b10"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Keep only the newest unused code for each pair before enforcing it.
    op.execute(
        """
        DELETE FROM otp_tokens AS older
        USING otp_tokens AS newer
        WHERE older.used_at IS NULL
          AND newer.used_at IS NULL
          AND older.email = newer.email
          AND older.purpose = newer.purpose
          AND (older.created_at, older.id) < (newer.created_at, newer.id)
        """
    )
    op.create_index(
        "uq_otp_tokens_email_purpose_unused",
        "otp_tokens",
        ["email", "purpose"],
        unique=True,
        postgresql_where=sa.text("used_at IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_otp_tokens_email_purpose_unused", table_name="otp_tokens")
