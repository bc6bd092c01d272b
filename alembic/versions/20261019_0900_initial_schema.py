"""Initial schema: accounts, organizations, bookings and onboarding drafts

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_0900'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Tenants
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('employee_count', sa.Integer(), nullable=False),

        # Subscription (enum values stored as strings)
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('subscription_status', sa.String(40), nullable=True),
        sa.Column('subscription_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),

        # Onboarding
        sa.Column('onboarding_data', sa.JSON(), nullable=True),
        sa.Column('onboarding_complete', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_organizations'),
    )
    op.create_index('ix_organizations_stripe_customer_id', 'organizations', ['stripe_customer_id'], unique=True)

    # Accounts
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('email_confirmed', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Staff profiles share the account id
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('department', sa.String(100), nullable=True),
        sa.Column('role', sa.String(30), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['id'], ['users.id'],
            name='fk_profiles_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_profiles_organization_id_organizations', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_profiles'),
    )
    op.create_index('ix_profiles_organization_id', 'profiles', ['organization_id'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_clients_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_clients'),
    )
    op.create_index('ix_clients_organization_id', 'clients', ['organization_id'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_services_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_services'),
    )
    op.create_index('ix_services_organization_id', 'services', ['organization_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('service_id', sa.Uuid(), nullable=True),
        sa.Column('employee_id', sa.Uuid(), nullable=True),
        sa.Column('booking_datetime', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_bookings_organization_id_organizations', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['client_id'], ['clients.id'],
            name='fk_bookings_client_id_clients', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['service_id'], ['services.id'],
            name='fk_bookings_service_id_services', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['employee_id'], ['profiles.id'],
            name='fk_bookings_employee_id_profiles', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_bookings'),
    )
    op.create_index('ix_bookings_organization_id', 'bookings', ['organization_id'])
    op.create_index('ix_bookings_employee_id', 'bookings', ['employee_id'])

    # Wizard drafts, one per account
    op.create_table(
        'onboarding_drafts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('step', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('error', sa.String(255), nullable=True),
        sa.Column('organization_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_onboarding_drafts_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['organization_id'], ['organizations.id'],
            name='fk_onboarding_drafts_organization_id_organizations', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_onboarding_drafts'),
        sa.UniqueConstraint('user_id', name='uq_onboarding_drafts_user_id'),
    )


def downgrade() -> None:
    op.drop_table('onboarding_drafts')
    op.drop_index('ix_bookings_employee_id', table_name='bookings')
    op.drop_index('ix_bookings_organization_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_services_organization_id', table_name='services')
    op.drop_table('services')
    op.drop_index('ix_clients_organization_id', table_name='clients')
    op.drop_table('clients')
    op.drop_index('ix_profiles_organization_id', table_name='profiles')
    op.drop_table('profiles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_organizations_stripe_customer_id', table_name='organizations')
    op.drop_table('organizations')
