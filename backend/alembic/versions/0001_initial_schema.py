"""Initial adlens schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

WHAT:
    Creates users, ad_account_connections, campaigns, campaign_metrics and
    ai_insights with their enums, natural-key unique constraints and lookup
    indexes.

WHY:
    - uq_campaigns_connection_platform_id and uq_campaign_metrics_campaign_date
      back the sync upserts, so concurrent syncs cannot insert duplicates
    - ix_campaign_metrics_date serves date-range filtering
    - ix_ai_insights_user_created serves the recent insights feed

REFERENCES:
    - adlens/models.py
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


PLATFORMS = (
    'meta_ads', 'shopee_ads', 'tiktok_ads', 'tokopedia_ads',
    'google_ads', 'lazada_ads', 'snack_video_ads',
)
OBJECTIVES = ('awareness', 'engagement', 'traffic', 'conversion')
CONNECTION_STATUSES = ('connected', 'disconnected', 'error', 'pending')

ad_platform = postgresql.ENUM(*PLATFORMS, name='ad_platform', create_type=False)
ad_objective = postgresql.ENUM(*OBJECTIVES, name='ad_objective', create_type=False)
connection_status = postgresql.ENUM(*CONNECTION_STATUSES, name='connection_status', create_type=False)


def upgrade() -> None:
    # =========================================================================
    # STEP 1: Enum types (shared between tables, created once)
    # =========================================================================
    bind = op.get_bind()
    ad_platform.create(bind, checkfirst=True)
    ad_objective.create(bind, checkfirst=True)
    connection_status.create(bind, checkfirst=True)

    # =========================================================================
    # STEP 2: Users and connections
    # =========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'ad_account_connections',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('platform', ad_platform, nullable=False),
        sa.Column('account_id', sa.String(), nullable=False),
        sa.Column('account_name', sa.String(), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('status', connection_status, nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_ad_account_connections_user_id', 'ad_account_connections', ['user_id'])

    # =========================================================================
    # STEP 3: Campaigns and daily metrics
    # =========================================================================
    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('connection_id', sa.Integer(), sa.ForeignKey('ad_account_connections.id'), nullable=False),
        sa.Column('platform_campaign_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('objective', ad_objective, nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('daily_budget', sa.Numeric(10, 2), nullable=True),
        sa.Column('lifetime_budget', sa.Numeric(10, 2), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('connection_id', 'platform_campaign_id', name='uq_campaigns_connection_platform_id'),
    )
    op.create_index('ix_campaigns_connection_id', 'campaigns', ['connection_id'])

    op.create_table(
        'campaign_metrics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),

        # Base measures
        sa.Column('impressions', sa.Integer(), nullable=False),
        sa.Column('clicks', sa.Integer(), nullable=False),
        sa.Column('spend', sa.Numeric(10, 2), nullable=False),
        sa.Column('conversions', sa.Integer(), nullable=False),
        sa.Column('conversion_value', sa.Numeric(10, 2), nullable=False),

        # Rates
        sa.Column('ctr', sa.Float(), nullable=False),
        sa.Column('cpc', sa.Numeric(10, 4), nullable=False),
        sa.Column('cpm', sa.Numeric(10, 4), nullable=False),
        sa.Column('roas', sa.Float(), nullable=False),

        # Optional platform-specific measures
        sa.Column('frequency', sa.Float(), nullable=True),
        sa.Column('reach', sa.Integer(), nullable=True),
        sa.Column('video_views', sa.Integer(), nullable=True),
        sa.Column('engagement_rate', sa.Float(), nullable=True),

        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('campaign_id', 'date', name='uq_campaign_metrics_campaign_date'),
    )
    op.create_index('ix_campaign_metrics_campaign_id', 'campaign_metrics', ['campaign_id'])
    op.create_index('ix_campaign_metrics_date', 'campaign_metrics', ['date'])

    # =========================================================================
    # STEP 4: Insights
    # =========================================================================
    op.create_table(
        'ai_insights',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id'), nullable=True),
        sa.Column('connection_id', sa.Integer(), sa.ForeignKey('ad_account_connections.id'), nullable=True),
        sa.Column('insight_type', sa.String(64), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('recommendations', sa.Text(), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=False),
        sa.Column('platform', ad_platform, nullable=False),
        sa.Column('objective', ad_objective, nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_ai_insights_user_created', 'ai_insights', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_ai_insights_user_created', table_name='ai_insights')
    op.drop_table('ai_insights')

    op.drop_index('ix_campaign_metrics_date', table_name='campaign_metrics')
    op.drop_index('ix_campaign_metrics_campaign_id', table_name='campaign_metrics')
    op.drop_table('campaign_metrics')

    op.drop_index('ix_campaigns_connection_id', table_name='campaigns')
    op.drop_table('campaigns')

    op.drop_index('ix_ad_account_connections_user_id', table_name='ad_account_connections')
    op.drop_table('ad_account_connections')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    connection_status.drop(bind, checkfirst=True)
    ad_objective.drop(bind, checkfirst=True)
    ad_platform.drop(bind, checkfirst=True)
