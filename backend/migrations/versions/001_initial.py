"""Initial migration - create the application state table

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

The gradebook persists its undo history, cursor and audit log as one
JSON document per deployment, so a single table is enough:
- app_state: serialized {historyStack, historyIndex, history}
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_state',
        sa.Column('key', sa.String(64), primary_key=True),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('app_state')
