"""add version to classrooms

Revision ID: 8d4e61b0c2a7
Revises: 3c1f9a27b6d4
Create Date: 2026-10-19 16:40:07.512930

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8d4e61b0c2a7'
down_revision: Union[str, Sequence[str], None] = '3c1f9a27b6d4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    existing_cols = {c["name"] for c in sa.inspect(bind).get_columns("classrooms")}

    if "version" not in existing_cols:
        with op.batch_alter_table("classrooms") as batch_op:
            batch_op.add_column(
                sa.Column("version", sa.Integer(), nullable=False, server_default="1")
            )


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("classrooms") as batch_op:
        batch_op.drop_column("version")
