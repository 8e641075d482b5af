"""create servers table

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "servers",
        sa.Column("unique_id", sa.String(length=64), nullable=False),
        sa.Column("owner", sa.String(length=255), nullable=False),
        sa.Column("server_name", sa.String(length=255), nullable=False),
        sa.Column("subdomain_name", sa.String(length=63), nullable=True),
        sa.Column("server_config", sa.JSON(), nullable=False),
        sa.Column("environment_id", sa.Integer(), nullable=True),
        sa.Column("port", sa.Integer(), nullable=True),
        sa.Column("rcon_port", sa.Integer(), nullable=True),
        sa.Column("stack_id", sa.Integer(), nullable=True),
        sa.Column("is_online", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("unique_id"),
    )
    op.create_index("ix_servers_owner", "servers", ["owner"])
    op.create_index("ix_servers_owner_subdomain", "servers", ["owner", "subdomain_name"])


def downgrade() -> None:
    op.drop_index("ix_servers_owner_subdomain", table_name="servers")
    op.drop_index("ix_servers_owner", table_name="servers")
    op.drop_table("servers")
