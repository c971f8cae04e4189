"""add media_files for uploaded label logos

Revision ID: 20261018_media_files
Revises: 20261018_initial
Create Date: 2026-10-18 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_media_files'
down_revision = '20261018_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'media_files',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=64), nullable=False),
        sa.Column('original_name', sa.String(length=255), nullable=False),
        sa.Column('file_type', sa.String(length=64), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False, server_default='logo'),
        sa.Column('uploaded_by', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('file_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_media_files_category_active', 'media_files', ['category', 'is_active'])


def downgrade():
    op.drop_index('ix_media_files_category_active', table_name='media_files')
    op.drop_table('media_files')
