"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Tables:
- Core: users, properties, experiences
- Stays: reservations, property_availability, property_pricing, property_discounts, property_blocks, property_reviews
- Experiences: experience_availability, experience_participants, experience_invites, experience_bookings
- Groups: experience_groups, experience_group_members, group_join_requests, group_chat_messages,
  group_wishlist_items, group_wishlist_likes
- System: notifications, audit_logs
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all database tables."""
    bind = op.get_bind()
    is_postgres = bind.dialect.name == 'postgresql'

    json_type = postgresql.JSON if is_postgres else sa.JSON

    # ===========================================
    # 1. CORE
    # ===========================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('profile_picture', sa.String(500), nullable=True),
        sa.Column('push_tokens', json_type, nullable=True),
        sa.Column('allows_notifications', sa.Boolean, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'properties',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('host_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('images', json_type, nullable=True),
        sa.Column('max_guests', sa.Integer, server_default='2'),
        sa.Column('nightly_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), server_default='MRO'),
        sa.Column('cancellation_policy', sa.String(20), server_default='flexible'),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('rating', sa.Float, server_default='0'),
        sa.Column('review_count', sa.Integer, server_default='0'),
        *_timestamps(),
        sa.Column('is_deleted', sa.Boolean, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_properties_host_id', 'properties', ['host_id'])
    op.create_index('ix_properties_city', 'properties', ['city'])
    op.create_index('ix_properties_status', 'properties', ['status'])
    op.create_index('ix_properties_is_deleted', 'properties', ['is_deleted'])

    op.create_table(
        'experiences',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('host_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('photos', json_type, nullable=True),
        sa.Column('group_size', sa.Integer, nullable=False, server_default='1'),
        sa.Column('price_per_person', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), server_default='draft'),
        *_timestamps(),
    )
    op.create_index('ix_experiences_host_id', 'experiences', ['host_id'])
    op.create_index('ix_experiences_city', 'experiences', ['city'])

    # ===========================================
    # 2. STAYS
    # ===========================================
    op.create_table(
        'reservations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('guest_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('check_in', sa.Date, nullable=False),
        sa.Column('check_out', sa.Date, nullable=False),
        sa.Column('num_guests', sa.Integer, server_default='1'),
        sa.Column('total_price', sa.Numeric(10, 2), server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        sa.Column('note', sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint('check_out > check_in', name='ck_reservation_dates'),
    )
    op.create_index('ix_reservations_guest_id', 'reservations', ['guest_id'])
    op.create_index('ix_reservation_property_status', 'reservations', ['property_id', 'status'])
    op.create_index('ix_reservation_status_expires', 'reservations', ['status', 'expires_at'])

    op.create_table(
        'property_availability',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('is_available', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('price', sa.Numeric(10, 2), server_default='0'),
        sa.Column('min_stay', sa.Integer, nullable=False, server_default='1'),
        sa.Column('max_stay', sa.Integer, nullable=False, server_default='0'),
        sa.Column('check_in_time', sa.String(5), server_default='15:00'),
        sa.Column('check_out_time', sa.String(5), server_default='11:00'),
        sa.Column('notes', sa.Text, server_default=''),
        *_timestamps(),
        sa.UniqueConstraint('property_id', 'date', name='uq_property_availability_date'),
        sa.CheckConstraint('min_stay >= 1', name='ck_availability_min_stay'),
    )
    op.create_index(
        'ix_property_availability_lookup', 'property_availability',
        ['property_id', 'date', 'is_available']
    )

    op.create_table(
        'property_pricing',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('weekend_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('weekly_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('monthly_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('cleaning_fee', sa.Numeric(10, 2), server_default='0'),
        sa.Column('service_fee', sa.Numeric(10, 2), server_default='0'),
        sa.Column('security_deposit', sa.Numeric(10, 2), server_default='0'),
        sa.Column('currency', sa.String(3), server_default='MRO'),
        *_timestamps(),
    )

    op.create_table(
        'property_discounts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('discount_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('value', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('min_stay', sa.Integer, nullable=True),
        sa.Column('max_stay', sa.Integer, nullable=True),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint('value >= 0', name='ck_discount_value'),
    )
    op.create_index('ix_property_discounts_property_id', 'property_discounts', ['property_id'])

    op.create_table(
        'property_blocks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('is_maintenance', sa.Boolean, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_property_blocks_property_id', 'property_blocks', ['property_id'])

    op.create_table(
        'property_reviews',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reservation_id', sa.String(36), sa.ForeignKey('reservations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('body', sa.Text, nullable=True),
        sa.Column('stars', sa.Integer, nullable=False),
        sa.Column('is_verified', sa.Boolean, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'property_id', name='uq_review_user_property'),
        sa.CheckConstraint('stars >= 1 AND stars <= 5', name='ck_review_stars'),
    )
    op.create_index('ix_property_reviews_property_id', 'property_reviews', ['property_id'])

    # ===========================================
    # 3. EXPERIENCES & GROUPS
    # ===========================================
    op.create_table(
        'experience_availability',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='available'),
        *_timestamps(),
        sa.UniqueConstraint('experience_id', 'date', name='uq_experience_availability_date'),
    )

    op.create_table(
        'experience_participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='joined'),
        sa.Column('joined_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('left_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('experience_id', 'user_id', name='uq_experience_participant'),
    )

    op.create_table(
        'experience_invites',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inviter_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invitee_user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('link_token', sa.String(64), nullable=True, unique=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        *_timestamps(),
        sa.CheckConstraint('(invitee_user_id IS NULL) <> (link_token IS NULL)', name='ck_invite_target'),
    )
    op.create_index('ix_experience_invites_inviter_id', 'experience_invites', ['inviter_id'])
    op.create_index('ix_experience_invites_invitee_user_id', 'experience_invites', ['invitee_user_id'])
    op.create_index(
        'ix_invite_experience_inviter', 'experience_invites',
        ['experience_id', 'inviter_id', 'status']
    )

    op.create_table(
        'experience_groups',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=True),
        sa.Column('owner_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('photo_url', sa.String(500), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('privacy', sa.String(20), nullable=False, server_default='private'),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_experience_groups_owner_id', 'experience_groups', ['owner_id'])
    op.create_index('ix_group_experience_owner', 'experience_groups', ['experience_id', 'owner_id', 'status'])

    op.create_table(
        'experience_group_members',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('group_id', sa.String(36), sa.ForeignKey('experience_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='joined'),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime, nullable=True),
        sa.Column('left_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('group_id', 'user_id', name='uq_group_member'),
    )
    op.create_index('ix_experience_group_members_user_id', 'experience_group_members', ['user_id'])

    op.create_table(
        'experience_bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=False),
        sa.Column('group_id', sa.String(36), sa.ForeignKey('experience_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('participant_count', sa.Integer, nullable=False, server_default='1'),
        sa.Column('selected_date', sa.Date, nullable=False),
        sa.Column('selected_time', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('total_price', sa.Numeric(10, 2), server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('is_read', sa.Boolean, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint('participant_count >= 1', name='ck_experience_booking_count'),
    )
    op.create_index('ix_experience_bookings_user_id', 'experience_bookings', ['user_id'])
    op.create_index(
        'ix_experience_booking_date', 'experience_bookings',
        ['experience_id', 'selected_date', 'status']
    )

    op.create_table(
        'group_join_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('group_id', sa.String(36), sa.ForeignKey('experience_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requester_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('responded_at', sa.DateTime, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_group_join_requests_group_id', 'group_join_requests', ['group_id'])
    op.create_index('ix_group_join_requests_requester_id', 'group_join_requests', ['requester_id'])

    op.create_table(
        'group_chat_messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('group_id', sa.String(36), sa.ForeignKey('experience_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sender_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text, nullable=False, server_default=''),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('message_type', sa.String(20), nullable=False, server_default='message'),
        sa.Column('ref_type', sa.String(30), nullable=True),
        sa.Column('ref_id', sa.String(36), nullable=True),
        sa.Column('preview_title', sa.String(200), nullable=True),
        sa.Column('preview_subtitle', sa.String(200), nullable=True),
        sa.Column('preview_description', sa.Text, nullable=True),
        sa.Column('preview_image_url', sa.String(500), nullable=True),
        sa.Column('expires_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_group_chat_group_created', 'group_chat_messages', ['group_id', 'created_at'])

    op.create_table(
        'group_wishlist_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('group_id', sa.String(36), sa.ForeignKey('experience_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('added_by_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('experience_id', sa.String(36), sa.ForeignKey('experiences.id', ondelete='CASCADE'), nullable=True),
        sa.Column('property_id', sa.String(36), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_group_wishlist_items_group_id', 'group_wishlist_items', ['group_id'])

    op.create_table(
        'group_wishlist_likes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('item_id', sa.String(36), sa.ForeignKey('group_wishlist_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('item_id', 'user_id', name='uq_wishlist_like'),
    )

    # ===========================================
    # 4. SYSTEM
    # ===========================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('ref_type', sa.String(50), nullable=True),
        sa.Column('ref_id', sa.String(36), nullable=True),
        sa.Column('is_read', sa.Boolean, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('admin_user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.String(36), nullable=True),
        sa.Column('before_json', json_type, nullable=True),
        sa.Column('after_json', json_type, nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_admin_user_id', 'audit_logs', ['admin_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'audit_logs',
        'notifications',
        'group_wishlist_likes',
        'group_wishlist_items',
        'group_chat_messages',
        'group_join_requests',
        'experience_bookings',
        'experience_group_members',
        'experience_groups',
        'experience_invites',
        'experience_participants',
        'experience_availability',
        'property_reviews',
        'property_blocks',
        'property_discounts',
        'property_pricing',
        'property_availability',
        'reservations',
        'experiences',
        'properties',
        'users',
    ):
        op.drop_table(table)
