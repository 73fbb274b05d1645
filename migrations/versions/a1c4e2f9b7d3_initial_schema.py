"""Initial schema: articles, users, seen list, session log, content cache, sources, llm logs

Revision ID: a1c4e2f9b7d3
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e2f9b7d3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'articles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=1024), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('image_url', sa.String(length=2048), nullable=True),
        sa.Column('is_real', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('source', sa.String(length=256), nullable=True),
        sa.Column('player_views', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('(is_real AND reason IS NULL) OR (NOT is_real AND reason IS NOT NULL)',
                           name='ck_articles_reason_matches_truth'),
    )
    op.create_index('ix_articles_real_created', 'articles', ['is_real', 'created_at'], unique=False)
    op.create_index('ix_articles_category', 'articles', ['category'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=256), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('points', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_points', 'users', ['points'], unique=False)

    op.create_table(
        'seen_articles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('article_id', sa.String(length=36), nullable=False),
        sa.Column('seen_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['article_id'], ['articles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'article_id', name='uq_seen_user_article'),
    )
    op.create_index('ix_seen_articles_user', 'seen_articles', ['user_id'], unique=False)

    op.create_table(
        'game_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_session_id', sa.String(length=64), nullable=True),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('article_id', sa.String(length=36), nullable=False),
        sa.Column('user_answer', sa.Boolean(), nullable=False),
        sa.Column('selected_reason', sa.String(length=64), nullable=True),
        sa.Column('points_delta', sa.Integer(), server_default='0', nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['article_id'], ['articles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_session_id', 'article_id', name='uq_game_session_article'),
    )
    op.create_index('ix_game_sessions_user_ts', 'game_sessions', ['user_id', 'timestamp'], unique=False)
    op.create_index('ix_game_sessions_article', 'game_sessions', ['article_id'], unique=False)

    op.create_table(
        'article_content_cache',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('original_article_id', sa.String(length=36), nullable=False),
        sa.Column('original_title', sa.String(length=1024), nullable=True),
        sa.Column('original_content', sa.Text(), nullable=True),
        sa.Column('fixed_title', sa.String(length=1024), nullable=False),
        sa.Column('fixed_content', sa.Text(), nullable=False),
        sa.Column('is_real', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['original_article_id'], ['articles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('original_article_id'),
    )

    op.create_table(
        'sources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=256), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('last_fetched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_success_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_failure_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('consecutive_successes', sa.Integer(), server_default='0', nullable=True),
        sa.Column('consecutive_failures', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_failures', sa.Integer(), server_default='0', nullable=True),
        sa.Column('avg_latency_ms', sa.Float(), nullable=True),
        sa.Column('last_error', sa.String(length=512), nullable=True),
        sa.Column('auto_disabled_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url'),
    )
    op.create_index('ix_sources_category_active', 'sources', ['category', 'is_active'], unique=False)
    op.create_index('ix_sources_auto_disabled_until', 'sources', ['auto_disabled_until'], unique=False)

    op.create_table(
        'llm_call_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('call_purpose', sa.String(length=128), nullable=False),
        sa.Column('model', sa.String(length=64), nullable=False),
        sa.Column('prompt_tokens', sa.Integer(), nullable=False),
        sa.Column('completion_tokens', sa.Integer(), nullable=False),
        sa.Column('total_tokens', sa.Integer(), nullable=False),
        sa.Column('latency_ms', sa.Integer(), nullable=True),
        sa.Column('article_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_llm_logs_created', 'llm_call_logs', ['created_at'], unique=False)


def downgrade():
    op.drop_index('ix_llm_logs_created', table_name='llm_call_logs')
    op.drop_table('llm_call_logs')
    op.drop_index('ix_sources_auto_disabled_until', table_name='sources')
    op.drop_index('ix_sources_category_active', table_name='sources')
    op.drop_table('sources')
    op.drop_table('article_content_cache')
    op.drop_index('ix_game_sessions_article', table_name='game_sessions')
    op.drop_index('ix_game_sessions_user_ts', table_name='game_sessions')
    op.drop_table('game_sessions')
    op.drop_index('ix_seen_articles_user', table_name='seen_articles')
    op.drop_table('seen_articles')
    op.drop_index('ix_users_points', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_articles_category', table_name='articles')
    op.drop_index('ix_articles_real_created', table_name='articles')
    op.drop_table('articles')
