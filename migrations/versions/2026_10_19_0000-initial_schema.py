"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - festival_id_log table: Append-only tracking events
    - app_options table: Operator key/value settings
    """
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_tables = inspector.get_table_names()

    if 'festival_id_log' not in existing_tables:
        op.create_table(
            'festival_id_log',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('festival_id', sa.String(length=10), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('user_hash', sa.String(length=32), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index(
            'ix_festival_id_log_festival_id',
            'festival_id_log',
            ['festival_id']
        )
        op.create_index(
            'ix_festival_id_log_timestamp',
            'festival_id_log',
            ['timestamp']
        )
        op.create_index(
            'ix_festival_id_log_user_hash',
            'festival_id_log',
            ['user_hash']
        )

    if 'app_options' not in existing_tables:
        op.create_table(
            'app_options',
            sa.Column('key', sa.String(length=64), nullable=False),
            sa.Column('value', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('key')
        )


def downgrade() -> None:
    """
    Drop all tables and indexes.

    Dropping festival_id_log deletes every recorded event.
    """
    op.drop_table('app_options')

    op.drop_index('ix_festival_id_log_user_hash', table_name='festival_id_log')
    op.drop_index('ix_festival_id_log_timestamp', table_name='festival_id_log')
    op.drop_index('ix_festival_id_log_festival_id', table_name='festival_id_log')
    op.drop_table('festival_id_log')
