"""create_postpulse_schema

Revision ID: 5b1f0c2d9a41
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5b1f0c2d9a41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Must match EMBEDDING_DIMENSION (text-embedding-3-small)
EMBEDDING_DIMENSION = 1536


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """
    Create the PostPulse schema.

    Tables: users, posts, social_accounts, ai_insights, platform_sync_status,
    performance_patterns, ai_context_logs.

    Indexes of note:
    - HNSW (cosine) on posts.embedding
    - GIN on posts.platforms and posts.topics
    """
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    # ================================
    # users
    # ================================
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Login e-mail, unique per account'),
        sa.Column('name', sa.String(length=100), nullable=True, comment='Display name'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_superuser', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ================================
    # posts
    # ================================
    op.create_table(
        'posts',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='Owner of the post'),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(length=20), nullable=True, comment='post, reel, video, carousel, story'),
        sa.Column('platforms', postgresql.ARRAY(sa.String(length=50)), nullable=False, server_default='{}'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('topics', postgresql.ARRAY(sa.String(length=50)), nullable=False, server_default='{}'),
        sa.Column('post_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('likes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comments', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reach', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('impressions', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_posts_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_posts')),
    )
    op.execute(f'ALTER TABLE posts ADD COLUMN embedding vector({EMBEDDING_DIMENSION})')

    op.create_index('ix_posts_user_id', 'posts', ['user_id'])
    op.create_index('ix_posts_status', 'posts', ['status'])
    op.create_index('ix_posts_published_at', 'posts', ['published_at'])
    op.create_index('ix_posts_platforms', 'posts', ['platforms'], postgresql_using='gin')
    op.create_index('ix_posts_topics', 'posts', ['topics'], postgresql_using='gin')
    op.execute("""
        CREATE INDEX ix_posts_embedding_hnsw
        ON posts
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
    """)

    # ================================
    # social_accounts
    # ================================
    op.create_table(
        'social_accounts',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='connected'),
        sa.Column('external_account_id', sa.String(length=100), nullable=True),
        sa.Column('account_name', sa.String(length=255), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('platform_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_social_accounts_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_social_accounts')),
        sa.UniqueConstraint('user_id', 'platform', name='uq_social_accounts_user_platform'),
    )
    op.create_index('ix_social_accounts_user_id', 'social_accounts', ['user_id'])

    # ================================
    # ai_insights
    # ================================
    op.create_table(
        'ai_insights',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('external_post_id', sa.String(length=100), nullable=True),
        sa.Column('external_account_id', sa.String(length=100), nullable=True),
        sa.Column('likes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comments_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('saves_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reach', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('impressions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('engagement_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('performance_category', sa.String(length=50), nullable=False, server_default='low'),
        sa.Column('content_features', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('post_timing', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sync_status', sa.String(length=50), nullable=False, server_default='synced'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_ai_insights_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], name=op.f('fk_ai_insights_post_id_posts'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_ai_insights')),
        sa.UniqueConstraint('user_id', 'post_id', 'platform', name='uq_ai_insights_user_post_platform'),
    )
    op.create_index('ix_ai_insights_user_id', 'ai_insights', ['user_id'])
    op.create_index('ix_ai_insights_post_id', 'ai_insights', ['post_id'])
    op.create_index('ix_ai_insights_performance_category', 'ai_insights', ['performance_category'])
    op.create_index('ix_ai_insights_last_synced_at', 'ai_insights', ['last_synced_at'])

    # ================================
    # platform_sync_status
    # ================================
    op.create_table(
        'platform_sync_status',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.String(length=50), nullable=False),
        sa.Column('sync_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_successful_sync', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('api_status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('api_error_message', sa.String(length=500), nullable=True),
        sa.Column('failed_syncs', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_platform_sync_status_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_platform_sync_status')),
        sa.UniqueConstraint('user_id', 'platform', name='uq_platform_sync_status_user_platform'),
    )
    op.create_index('ix_platform_sync_status_user_id', 'platform_sync_status', ['user_id'])
    op.create_index('ix_platform_sync_status_next_sync_at', 'platform_sync_status', ['next_sync_at'])

    # ================================
    # performance_patterns
    # ================================
    op.create_table(
        'performance_patterns',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('pattern_type', sa.String(length=50), nullable=False),
        sa.Column('pattern_name', sa.String(length=100), nullable=False),
        sa.Column('pattern_description', sa.Text(), nullable=True),
        sa.Column('pattern_criteria', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('avg_engagement_lift', sa.Float(), nullable=False, server_default='0'),
        sa.Column('confidence_level', sa.Float(), nullable=False, server_default='0'),
        sa.Column('sample_size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('priority_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_performance_patterns_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_performance_patterns')),
    )
    op.create_index('ix_performance_patterns_user_id', 'performance_patterns', ['user_id'])
    op.create_index('ix_performance_patterns_priority_score', 'performance_patterns', ['priority_score'])

    # ================================
    # ai_context_logs
    # ================================
    op.create_table(
        'ai_context_logs',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(length=50), nullable=False),
        sa.Column('context_summary', sa.Text(), nullable=True),
        sa.Column('ai_response', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('model_used', sa.String(length=100), nullable=True),
        sa.Column('log_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_ai_context_logs_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_ai_context_logs')),
    )
    op.create_index('ix_ai_context_logs_user_id', 'ai_context_logs', ['user_id'])
    op.create_index('ix_ai_context_logs_source_type', 'ai_context_logs', ['source_type'])


def downgrade() -> None:
    """Drop all PostPulse tables (the vector extension is left installed)."""
    op.drop_table('ai_context_logs')
    op.drop_table('performance_patterns')
    op.drop_table('platform_sync_status')
    op.drop_table('ai_insights')
    op.drop_table('social_accounts')
    op.execute('DROP INDEX IF EXISTS ix_posts_embedding_hnsw')
    op.drop_table('posts')
    op.drop_table('users')
