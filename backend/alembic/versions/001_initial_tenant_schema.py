"""Initial tenant schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

WHY: Organizations, users and invites are the tenant store. Primary keys
are strings chosen by the application (opaque org ids, identity-provider
subjects, normalized emails) so create-if-absent inserts can dedupe on
them with ON CONFLICT DO NOTHING.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create organizations, users and invites."""
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='org'),
        sa.Column('seat_limit', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('seats_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('plan', sa.String(length=64), nullable=False, server_default='Free'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organizations_stripe_customer_id', 'organizations', ['stripe_customer_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='VIEWER'),
        sa.Column('access_suspended', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    # WHY: seat counting and billing fan-out both select users by organization
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])

    op.create_table(
        'invites',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('invited_by', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_user_id', sa.String(length=128), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_invites_email', 'invites', ['email'])
    op.create_index('ix_invites_organization_id', 'invites', ['organization_id'])
    op.create_index('ix_invites_status', 'invites', ['status'])


def downgrade() -> None:
    op.drop_index('ix_invites_status', table_name='invites')
    op.drop_index('ix_invites_organization_id', table_name='invites')
    op.drop_index('ix_invites_email', table_name='invites')
    op.drop_table('invites')
    op.drop_index('ix_users_organization_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_organizations_stripe_customer_id', table_name='organizations')
    op.drop_table('organizations')
