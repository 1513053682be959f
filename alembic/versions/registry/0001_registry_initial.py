"""Registry store baseline

Revision ID: 0001_registry
Revises:
Create Date: 2026-10-17

Persons, associations, units and the two membership tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_registry'
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
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('names', sa.String(100), nullable=False),
        sa.Column('last_names', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'associations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('address', sa.String(500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'units',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('association_id', sa.Integer(),
                  sa.ForeignKey('associations.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_units_association_id', 'units', ['association_id'])

    op.create_table(
        'user_units',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('unit_id', sa.Integer(), sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'unit_id', name='uq_user_units_user_unit'),
    )
    op.create_index('ix_user_units_user_id', 'user_units', ['user_id'])
    op.create_index('ix_user_units_unit_id', 'user_units', ['unit_id'])

    op.create_table(
        'user_associations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('association_id', sa.Integer(),
                  sa.ForeignKey('associations.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'association_id', name='uq_user_associations_user_association'),
    )
    op.create_index('ix_user_associations_user_id', 'user_associations', ['user_id'])
    op.create_index('ix_user_associations_association_id', 'user_associations', ['association_id'])


def downgrade() -> None:
    op.drop_table('user_associations')
    op.drop_table('user_units')
    op.drop_index('ix_units_association_id', table_name='units')
    op.drop_table('units')
    op.drop_table('associations')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
