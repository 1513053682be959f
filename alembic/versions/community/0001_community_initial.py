"""Community store baseline

Revision ID: 0001_community
Revises:
Create Date: 2026-10-17

Persons, associations, units, amenities, bookings and the per-(amenity, date)
slot lock rows.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_community'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'community_users',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('names', sa.String(100), nullable=False),
        sa.Column('last_names', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_community_users_email', 'community_users', ['email'], unique=True)

    op.create_table(
        'community_associations',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('address', sa.String(500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'community_units',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('association_id', sa.String(24),
                  sa.ForeignKey('community_associations.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_community_units_association_id', 'community_units', ['association_id'])

    op.create_table(
        'community_unit_assignments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('person_id', sa.String(24),
                  sa.ForeignKey('community_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', sa.String(24),
                  sa.ForeignKey('community_units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.UniqueConstraint('person_id', 'unit_id', name='uq_community_assignment_person_unit'),
    )

    op.create_table(
        'amenities',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('bookable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('opening_time', sa.String(5), nullable=True),
        sa.Column('closing_time', sa.String(5), nullable=True),
        sa.Column('association_id', sa.String(24),
                  sa.ForeignKey('community_associations.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_amenities_association_id', 'amenities', ['association_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('amenity_id', sa.String(24),
                  sa.ForeignKey('amenities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(24),
                  sa.ForeignKey('community_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('grouping_id', sa.String(24),
                  sa.ForeignKey('community_associations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('time_start', sa.String(5), nullable=False),
        sa.Column('time_end', sa.String(5), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('time_start < time_end', name='ck_booking_time_order'),
    )
    op.create_index('ix_booking_amenity_date', 'bookings', ['amenity_id', 'booking_date'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_grouping_id', 'bookings', ['grouping_id'])

    op.create_table(
        'booking_slots',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('amenity_id', sa.String(24),
                  sa.ForeignKey('amenities.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('amenity_id', 'slot_date', name='uq_booking_slot_amenity_date'),
    )


def downgrade() -> None:
    op.drop_table('booking_slots')
    op.drop_index('ix_bookings_grouping_id', table_name='bookings')
    op.drop_index('ix_bookings_user_id', table_name='bookings')
    op.drop_index('ix_booking_amenity_date', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_amenities_association_id', table_name='amenities')
    op.drop_table('amenities')
    op.drop_table('community_unit_assignments')
    op.drop_index('ix_community_units_association_id', table_name='community_units')
    op.drop_table('community_units')
    op.drop_table('community_associations')
    op.drop_index('ix_community_users_email', table_name='community_users')
    op.drop_table('community_users')
