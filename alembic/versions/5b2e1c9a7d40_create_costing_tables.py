"""create drafts and costing_records tables

Revision ID: 5b2e1c9a7d40
Revises:
Create Date: 2026-03-02 10:04:11.512208

Tables may already exist when the database was created by
Base.metadata.create_all(); creation is skipped for those.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5b2e1c9a7d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def _photo_columns():
    return [
        sa.Column('photo_data', sa.LargeBinary(), nullable=True),
        sa.Column('photo_type', sa.String(), nullable=True),
        sa.Column('photo_width', sa.Integer(), nullable=True),
        sa.Column('photo_height', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    if not _table_exists('drafts'):
        op.create_table(
            'drafts',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.Column('data_json', sa.JSON(), nullable=True),
            *_photo_columns(),
        )

    if not _table_exists('costing_records'):
        op.create_table(
            'costing_records',
            sa.Column('id', sa.String(), primary_key=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('app_version', sa.String(), nullable=False),
            sa.Column('calc_version', sa.String(), nullable=False),
            sa.Column('style_name', sa.String(), nullable=False),
            sa.Column('yarn_desc', sa.Text(), nullable=False),
            sa.Column('composition', sa.Text(), nullable=True),
            sa.Column('gauge', sa.Integer(), nullable=False),
            sa.Column('weight_gm', sa.Float(), nullable=False),
            sa.Column('currency', sa.String(), nullable=False),
            *_photo_columns(),
            sa.Column('inputs_json', sa.JSON(), nullable=False),
            sa.Column('computed_json', sa.JSON(), nullable=False),
        )
        op.create_index('ix_costing_records_created_at', 'costing_records', ['created_at'])
        op.create_index('ix_costing_records_style_name', 'costing_records', ['style_name'])


def downgrade() -> None:
    op.drop_index('ix_costing_records_style_name', table_name='costing_records')
    op.drop_index('ix_costing_records_created_at', table_name='costing_records')
    op.drop_table('costing_records')
    op.drop_table('drafts')
