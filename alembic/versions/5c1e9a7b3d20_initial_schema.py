"""initial schema

Revision ID: 5c1e9a7b3d20
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e9a7b3d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create actors, repositories, activities and their children plus metric samples."""
    op.create_table('actors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('company', sa.String(length=200), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
        sa.UniqueConstraint('username')
    )
    op.create_table('repositories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('owner', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('language', sa.String(length=100), nullable=True),
        sa.Column('languages', sa.JSON(), nullable=False),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False),
        sa.Column('is_fork', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('default_branch', sa.String(length=200), nullable=True),
        sa.Column('stars_count', sa.Integer(), nullable=False),
        sa.Column('forks_count', sa.Integer(), nullable=False),
        sa.Column('open_issues_count', sa.Integer(), nullable=False),
        sa.Column('github_created_at', sa.DateTime(), nullable=True),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('pushed_at', sa.DateTime(), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
        sa.UniqueConstraint('full_name')
    )
    op.create_table('activities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('state', sa.Enum('OPEN', 'CLOSED', 'MERGED', name='activitystate'), nullable=False),
        sa.Column('merged', sa.Boolean(), nullable=False),
        sa.Column('is_draft', sa.Boolean(), nullable=False),
        sa.Column('base_branch', sa.String(length=200), nullable=True),
        sa.Column('head_branch', sa.String(length=200), nullable=True),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('merged_by_id', sa.Integer(), nullable=True),
        sa.Column('additions', sa.Integer(), nullable=False),
        sa.Column('deletions', sa.Integer(), nullable=False),
        sa.Column('changed_files', sa.Integer(), nullable=False),
        sa.Column('reviews_count', sa.Integer(), nullable=False),
        sa.Column('comments_count', sa.Integer(), nullable=False),
        sa.Column('commits_count', sa.Integer(), nullable=False),
        sa.Column('time_to_first_review', sa.Integer(), nullable=True),
        sa.Column('time_to_merge', sa.Integer(), nullable=True),
        sa.Column('labels', sa.JSON(), nullable=False),
        sa.Column('github_created_at', sa.DateTime(), nullable=False),
        sa.Column('github_updated_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('merged_at', sa.DateTime(), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['author_id'], ['actors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['merged_by_id'], ['actors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
        sa.UniqueConstraint('repository_id', 'number', name='uq_repo_activity_number')
    )
    op.create_index('ix_activities_github_created_at', 'activities', ['github_created_at'])
    op.create_table('commits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sha', sa.String(length=40), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('committer_id', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('author_name', sa.String(length=200), nullable=True),
        sa.Column('author_email', sa.String(length=200), nullable=True),
        sa.Column('url', sa.String(length=500), nullable=True),
        sa.Column('additions', sa.Integer(), nullable=False),
        sa.Column('deletions', sa.Integer(), nullable=False),
        sa.Column('changed_files', sa.Integer(), nullable=False),
        sa.Column('authored_at', sa.DateTime(), nullable=True),
        sa.Column('committed_at', sa.DateTime(), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['author_id'], ['actors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['committer_id'], ['actors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sha')
    )
    op.create_index('ix_commits_repository_committed', 'commits', ['repository_id', 'committed_at'])
    op.create_table('activity_commits',
        sa.Column('activity_id', sa.Integer(), nullable=False),
        sa.Column('commit_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['commit_id'], ['commits.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('activity_id', 'commit_id')
    )
    op.create_table('reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('activity_id', sa.Integer(), nullable=False),
        sa.Column('reviewer_id', sa.Integer(), nullable=True),
        sa.Column('state', sa.Enum('APPROVED', 'CHANGES_REQUESTED', 'COMMENTED', 'PENDING', 'DISMISSED', name='reviewstate'), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewer_id'], ['actors.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )
    op.create_index('ix_reviews_activity_id', 'reviews', ['activity_id'])
    op.create_table('comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('activity_id', sa.Integer(), nullable=False),
        sa.Column('review_id', sa.Integer(), nullable=True),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.Enum('ISSUE', 'REVIEW_LINE', 'COMMIT', name='commenttype'), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('path', sa.String(length=500), nullable=True),
        sa.Column('line', sa.Integer(), nullable=True),
        sa.Column('reactions', sa.JSON(), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('github_created_at', sa.DateTime(), nullable=False),
        sa.Column('github_updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['activity_id'], ['activities.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['actors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['review_id'], ['reviews.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )
    op.create_index('ix_comments_activity_id', 'comments', ['activity_id'])
    op.create_table('metric_samples',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('repository_id', sa.Integer(), nullable=True),
        sa.Column('scope_key', sa.String(length=50), nullable=False),
        sa.Column('metric_type', sa.Enum('HOURLY', 'DAILY', 'WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY', name='metrictype'), nullable=False),
        sa.Column('metric_name', sa.String(length=100), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('pull_requests_opened', sa.Integer(), nullable=False),
        sa.Column('pull_requests_closed', sa.Integer(), nullable=False),
        sa.Column('pull_requests_merged', sa.Integer(), nullable=False),
        sa.Column('reviews_given', sa.Integer(), nullable=False),
        sa.Column('reviews_received', sa.Integer(), nullable=False),
        sa.Column('comments_given', sa.Integer(), nullable=False),
        sa.Column('comments_received', sa.Integer(), nullable=False),
        sa.Column('commits_count', sa.Integer(), nullable=False),
        sa.Column('lines_added', sa.Integer(), nullable=False),
        sa.Column('lines_deleted', sa.Integer(), nullable=False),
        sa.Column('files_changed', sa.Integer(), nullable=False),
        sa.Column('avg_time_to_first_review', sa.Float(), nullable=True),
        sa.Column('avg_time_to_merge', sa.Float(), nullable=True),
        sa.Column('avg_review_time', sa.Float(), nullable=True),
        sa.Column('avg_reviews_per_pr', sa.Float(), nullable=True),
        sa.Column('avg_comments_per_pr', sa.Float(), nullable=True),
        sa.Column('avg_comments_per_review', sa.Float(), nullable=True),
        sa.Column('merge_rate', sa.Float(), nullable=True),
        sa.Column('approval_rate', sa.Float(), nullable=True),
        sa.Column('unique_collaborators', sa.Integer(), nullable=False),
        sa.Column('cross_repo_activity', sa.Integer(), nullable=False),
        sa.Column('productivity_score', sa.Float(), nullable=True),
        sa.Column('quality_score', sa.Float(), nullable=True),
        sa.Column('collaboration_score', sa.Float(), nullable=True),
        sa.Column('velocity_score', sa.Float(), nullable=True),
        sa.Column('custom_metrics', sa.JSON(), nullable=False),
        sa.Column('data_points', sa.Integer(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['actors.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scope_key', 'metric_type', 'metric_name', 'period_start', name='uq_metric_sample_natural_key')
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('metric_samples')
    op.drop_index('ix_comments_activity_id', table_name='comments')
    op.drop_table('comments')
    op.drop_index('ix_reviews_activity_id', table_name='reviews')
    op.drop_table('reviews')
    op.drop_table('activity_commits')
    op.drop_index('ix_commits_repository_committed', table_name='commits')
    op.drop_table('commits')
    op.drop_index('ix_activities_github_created_at', table_name='activities')
    op.drop_table('activities')
    op.drop_table('repositories')
    op.drop_table('actors')
    for name in ('metrictype', 'commenttype', 'reviewstate', 'activitystate'):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
