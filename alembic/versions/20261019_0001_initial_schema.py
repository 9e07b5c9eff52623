"""Initial schema - threads, grants, pearls, credentials

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Threads table
    op.create_table(
        'threads',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(255), unique=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_threads_public', 'threads', ['is_public'])

    # Access grants: (thread, role, permission) is unique
    op.create_table(
        'thread_access',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('thread_id', sa.Uuid(), sa.ForeignKey('threads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(255), nullable=False),
        sa.Column('permission', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('thread_id', 'role', 'permission', name='uq_thread_access_grant'),
    )
    op.create_index('idx_access_thread_role', 'thread_access', ['thread_id', 'role'])

    # Pearls table
    op.create_table(
        'pearls',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('thread_id', sa.Uuid(), sa.ForeignKey('threads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('instance_id', sa.String(255), nullable=True),
        sa.Column('in_reply_to', sa.Uuid(), nullable=True),
        sa.Column('pearl_type', sa.String(50), nullable=True),
        sa.Column('authorship_type', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('parent_pearl', sa.Uuid(), nullable=True),
        sa.Column('embedding', sa.JSON(), nullable=True),
    )
    op.create_index('idx_pearls_thread', 'pearls', ['thread_id'])
    op.create_index('idx_pearls_created', 'pearls', ['created_at'])
    op.create_index('idx_pearls_status', 'pearls', ['status'])

    # Full-text index backing pearl_search on PostgreSQL
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        op.execute(
            "CREATE INDEX idx_pearls_fts ON pearls USING gin "
            "(to_tsvector('english', coalesce(title, '') || ' ' || content))"
        )

    # Service API keys
    op.create_table(
        'api_keys',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('key_hash', sa.String(64), unique=True, nullable=False),
        sa.Column('key_prefix', sa.String(32), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    # OAuth refresh tokens (hash only)
    op.create_table(
        'refresh_tokens',
        sa.Column('token_hash', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('refresh_tokens')
    op.drop_table('api_keys')
    op.drop_table('pearls')
    op.drop_table('thread_access')
    op.drop_table('threads')
