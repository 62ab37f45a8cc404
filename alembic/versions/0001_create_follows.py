"""create follows table

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("usuario_principal_username", sa.String(100), nullable=False),
        sa.Column("usuario_seguidor_username", sa.String(100), nullable=False),
        sa.Column(
            "fecha_creacion",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "usuario_principal_username",
            "usuario_seguidor_username",
            name="uq_follows_principal_seguidor",
        ),
        sa.CheckConstraint(
            "usuario_principal_username <> usuario_seguidor_username",
            name="ck_follows_no_self_follow",
        ),
    )
    op.create_index(
        "ix_follows_usuario_seguidor_username", "follows", ["usuario_seguidor_username"]
    )


def downgrade() -> None:
    op.drop_index("ix_follows_usuario_seguidor_username", table_name="follows")
    op.drop_table("follows")
