"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create accounts table
    op.create_table('accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), server_default='customer', nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('profile', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('reset_password_token', sa.String(length=128), nullable=True),
        sa.Column('reset_password_expires', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_accounts_email'), 'accounts', ['email'], unique=False)
    op.create_index(op.f('ix_accounts_role'), 'accounts', ['role'], unique=False)
    op.create_index(op.f('ix_accounts_country'), 'accounts', ['country'], unique=False)
    op.create_index(op.f('ix_accounts_reset_password_token'), 'accounts', ['reset_password_token'], unique=False)

    # Create tour_packages table
    op.create_table('tour_packages',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('short_description', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('circuit', sa.String(length=20), nullable=False),
        sa.Column('destinations', sa.JSON(), nullable=False),
        sa.Column('destination_names', sa.Text(), nullable=False, server_default=''),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('duration_nights', sa.Integer(), nullable=False),
        sa.Column('base_price', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='USD', nullable=False),
        sa.Column('price_includes', sa.JSON(), nullable=False),
        sa.Column('price_excludes', sa.JSON(), nullable=False),
        sa.Column('seasonal_pricing', sa.JSON(), nullable=False),
        sa.Column('group_discounts', sa.JSON(), nullable=False),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('inclusions', sa.JSON(), nullable=False),
        sa.Column('itinerary', sa.JSON(), nullable=False),
        sa.Column('media', sa.JSON(), nullable=False),
        sa.Column('requirements', sa.JSON(), nullable=False),
        sa.Column('average_rating', sa.Float(), server_default='0', nullable=False),
        sa.Column('total_reviews', sa.Integer(), server_default='0', nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('seo', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('base_price >= 0', name='ck_tour_package_base_price_non_negative'),
        sa.CheckConstraint('duration_days >= 1', name='ck_tour_package_duration_days_positive'),
        sa.CheckConstraint('duration_nights >= 0', name='ck_tour_package_duration_nights_non_negative'),
        sa.ForeignKeyConstraint(['created_by_id'], ['accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_tour_packages_name'), 'tour_packages', ['name'], unique=False)
    op.create_index(op.f('ix_tour_packages_category'), 'tour_packages', ['category'], unique=False)
    op.create_index(op.f('ix_tour_packages_circuit'), 'tour_packages', ['circuit'], unique=False)
    op.create_index(op.f('ix_tour_packages_duration_days'), 'tour_packages', ['duration_days'], unique=False)
    op.create_index(op.f('ix_tour_packages_base_price'), 'tour_packages', ['base_price'], unique=False)
    op.create_index(op.f('ix_tour_packages_slug'), 'tour_packages', ['slug'], unique=False)
    op.create_index(op.f('ix_tour_packages_is_active'), 'tour_packages', ['is_active'], unique=False)
    op.create_index(op.f('ix_tour_packages_created_by_id'), 'tour_packages', ['created_by_id'], unique=False)
    op.create_index(op.f('ix_tour_packages_created_at'), 'tour_packages', ['created_at'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('booking_reference', sa.String(length=32), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tour_package_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('assigned_agent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=False),
        sa.Column('adults', sa.Integer(), nullable=False),
        sa.Column('children', sa.Integer(), server_default='0', nullable=False),
        sa.Column('infants', sa.Integer(), server_default='0', nullable=False),
        sa.Column('room_configuration', sa.JSON(), nullable=False),
        sa.Column('travelers', sa.JSON(), nullable=False),
        sa.Column('traveler_names', sa.Text(), nullable=False, server_default=''),
        sa.Column('base_amount', sa.Float(), nullable=False),
        sa.Column('discounts', sa.JSON(), nullable=False),
        sa.Column('extras', sa.JSON(), nullable=False),
        sa.Column('taxes', sa.JSON(), nullable=True),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='USD', nullable=False),
        sa.Column('payment_status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('payment_method', sa.String(length=30), nullable=True),
        sa.Column('transactions', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('communications', sa.JSON(), nullable=False),
        sa.Column('documents', sa.JSON(), nullable=False),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.JSON(), nullable=False),
        sa.Column('source', sa.String(length=20), server_default='website', nullable=False),
        sa.Column('ota_reference', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('adults >= 1', name='ck_booking_adults_positive'),
        sa.CheckConstraint('children >= 0', name='ck_booking_children_non_negative'),
        sa.CheckConstraint('infants >= 0', name='ck_booking_infants_non_negative'),
        sa.CheckConstraint('length(booking_reference) > 0', name='ck_booking_reference_not_empty'),
        sa.ForeignKeyConstraint(['customer_id'], ['accounts.id']),
        sa.ForeignKeyConstraint(['tour_package_id'], ['tour_packages.id']),
        sa.ForeignKeyConstraint(['assigned_agent_id'], ['accounts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_reference')
    )
    op.create_index(op.f('ix_bookings_booking_reference'), 'bookings', ['booking_reference'], unique=False)
    op.create_index(op.f('ix_bookings_customer_id'), 'bookings', ['customer_id'], unique=False)
    op.create_index(op.f('ix_bookings_tour_package_id'), 'bookings', ['tour_package_id'], unique=False)
    op.create_index(op.f('ix_bookings_assigned_agent_id'), 'bookings', ['assigned_agent_id'], unique=False)
    op.create_index(op.f('ix_bookings_departure_date'), 'bookings', ['departure_date'], unique=False)
    op.create_index(op.f('ix_bookings_payment_status'), 'bookings', ['payment_status'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_source'), 'bookings', ['source'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)

    # Create campaigns table
    op.create_table('campaigns',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('target_segment', sa.String(length=50), nullable=True),
        sa.Column('scheduled_date', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='scheduled', nullable=False),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['created_by_id'], ['accounts.id']),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('campaigns')
    op.drop_table('bookings')
    op.drop_table('tour_packages')
    op.drop_table('accounts')
