"""create booking tables

Revision ID: a1f0c2d3e4b5
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1f0c2d3e4b5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=False),
        sa.Column('phone_normalized', sa.String(length=10), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('postal_code', sa.String(length=5), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False),
        sa.Column('package_type', sa.String(length=40), nullable=False),
        sa.Column('event_date', sa.String(length=40), nullable=False),
        sa.Column('event_time', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('expected_amount_cents', sa.Integer(), nullable=True),
        sa.Column('received_amount_cents', sa.Integer(), nullable=True),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=True),
        sa.Column('travel_fee_cents', sa.Integer(), nullable=False),
        sa.Column('travel_distance_miles', sa.Float(), nullable=True),
        sa.Column('stripe_session_id', sa.String(length=255), nullable=True),
        sa.Column('evidence_ref', sa.String(length=255), nullable=True),
        sa.Column('evidence_confidence', sa.String(length=10), nullable=True),
        sa.Column('needs_manual_review', sa.Boolean(), nullable=False),
        sa.Column('payment_verified', sa.Boolean(), nullable=False),
        sa.Column('payment_verified_at', sa.DateTime(), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('confirmation_number', sa.String(length=20), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('pending_expires_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancel_note', sa.String(length=255), nullable=True),
        sa.CheckConstraint('party_size > 0', name='ck_bookings_party_size_positive'),
        sa.CheckConstraint(
            "amount_paid_cents IS NULL OR status IN ('confirmed', 'completed', 'cancelled')",
            name='ck_bookings_paid_state'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('confirmation_number')
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bookings_phone_normalized'), ['phone_normalized'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_event_date'), ['event_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_stripe_session_id'), ['stripe_session_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_bookings_pending_expires_at'), ['pending_expires_at'], unique=False)

    op.create_table(
        'calendar_subscribers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('unsubscribe_token', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('unsubscribed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('calendar_subscribers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_calendar_subscribers_email'), ['email'], unique=True)
        batch_op.create_index(batch_op.f('ix_calendar_subscribers_unsubscribe_token'), ['unsubscribe_token'], unique=True)

    op.create_table(
        'reminder_markers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=False),
        sa.Column('tier', sa.String(length=20), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id', 'recipient_email', 'tier', name='uq_reminder_once')
    )
    with op.batch_alter_table('reminder_markers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reminder_markers_booking_id'), ['booking_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor', sa.String(length=20), nullable=False),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_logs_actor'), ['actor'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_action'), ['action'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_logs_timestamp'), ['timestamp'], unique=False)
        batch_op.create_index('ix_audit_logs_entity', ['entity', 'entity_id'], unique=False)


def downgrade():
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.drop_index('ix_audit_logs_entity')
        batch_op.drop_index(batch_op.f('ix_audit_logs_timestamp'))
        batch_op.drop_index(batch_op.f('ix_audit_logs_action'))
        batch_op.drop_index(batch_op.f('ix_audit_logs_actor'))
    op.drop_table('audit_logs')

    with op.batch_alter_table('reminder_markers', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_reminder_markers_booking_id'))
    op.drop_table('reminder_markers')

    with op.batch_alter_table('calendar_subscribers', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_calendar_subscribers_unsubscribe_token'))
        batch_op.drop_index(batch_op.f('ix_calendar_subscribers_email'))
    op.drop_table('calendar_subscribers')

    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_bookings_pending_expires_at'))
        batch_op.drop_index(batch_op.f('ix_bookings_stripe_session_id'))
        batch_op.drop_index(batch_op.f('ix_bookings_status'))
        batch_op.drop_index(batch_op.f('ix_bookings_event_date'))
        batch_op.drop_index(batch_op.f('ix_bookings_phone_normalized'))
    op.drop_table('bookings')
