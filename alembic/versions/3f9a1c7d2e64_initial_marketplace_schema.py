"""Initial marketplace schema: accounts, posts, reveals, entitlements, payments, reports, domains

Revision ID: 3f9a1c7d2e64
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c7d2e64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text('(CURRENT_TIMESTAMP)')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('accounts',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('stripe_customer_id', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('stripe_customer_id'),
    )

    op.create_table('verification_tokens',
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('account_email', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('token'),
    )
    op.create_index('ix_verification_tokens_account_email', 'verification_tokens', ['account_email'])
    op.create_index('ix_verification_tokens_expires_at', 'verification_tokens', ['expires_at'])

    op.create_table('posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_email', sa.Text(), nullable=False),
        sa.Column('owner_account_id', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('platform', sa.Text(), nullable=False),
        sa.Column('audience_size', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('interests', sa.JSON(), nullable=False),
        sa.Column('contact', sa.Text(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_email', name='uq_post_owner_email'),
    )
    op.create_index('ix_posts_role', 'posts', ['role'])
    op.create_index('ix_posts_platform', 'posts', ['platform'])
    op.create_index('ix_posts_created_at', 'posts', ['created_at'])

    op.create_table('contact_reveals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('requester_email', sa.Text(), nullable=False),
        sa.Column('target_post_id', sa.Integer(), nullable=False),
        sa.Column('amount_paid', sa.Integer(), nullable=False),
        sa.Column('transaction_ref', sa.Text(), nullable=False),
        sa.Column('revealed_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(['target_post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('requester_email', 'target_post_id', name='uq_contact_reveal_pair'),
    )
    op.create_index('ix_contact_reveals_requester_email', 'contact_reveals', ['requester_email'])
    op.create_index('ix_contact_reveals_target_post_id', 'contact_reveals', ['target_post_id'])

    op.create_table('posting_entitlements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('amount_paid', sa.Integer(), nullable=True),
        sa.Column('transaction_ref', sa.Text(), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('payment_sessions',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('payer_email', sa.Text(), nullable=False),
        sa.Column('purpose', sa.Text(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('target_post_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_sessions_payer_email', 'payment_sessions', ['payer_email'])
    op.create_index('ix_payment_sessions_status', 'payment_sessions', ['status'])

    op.create_table('user_reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reported_post_id', sa.Integer(), nullable=False),
        sa.Column('reporter_email', sa.Text(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.ForeignKeyConstraint(['reported_post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_reports_status', 'user_reports', ['status'])
    op.create_index('ix_user_reports_created_at', 'user_reports', ['created_at'])

    op.create_table('domain_verifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_email', sa.Text(), nullable=False),
        sa.Column('domain', sa.Text(), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_email', 'domain', name='uq_domain_verification_email_domain'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('domain_verifications')
    op.drop_index('ix_user_reports_created_at', table_name='user_reports')
    op.drop_index('ix_user_reports_status', table_name='user_reports')
    op.drop_table('user_reports')
    op.drop_index('ix_payment_sessions_status', table_name='payment_sessions')
    op.drop_index('ix_payment_sessions_payer_email', table_name='payment_sessions')
    op.drop_table('payment_sessions')
    op.drop_table('posting_entitlements')
    op.drop_index('ix_contact_reveals_target_post_id', table_name='contact_reveals')
    op.drop_index('ix_contact_reveals_requester_email', table_name='contact_reveals')
    op.drop_table('contact_reveals')
    op.drop_index('ix_posts_created_at', table_name='posts')
    op.drop_index('ix_posts_platform', table_name='posts')
    op.drop_index('ix_posts_role', table_name='posts')
    op.drop_table('posts')
    op.drop_index('ix_verification_tokens_expires_at', table_name='verification_tokens')
    op.drop_index('ix_verification_tokens_account_email', table_name='verification_tokens')
    op.drop_table('verification_tokens')
    op.drop_table('accounts')
