"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

REFERENCE_TABLES = ('departments', 'locations', 'levels')


def _record_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('document_number', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('slug', sa.String(), nullable=True),
        sa.Column('original_slug', sa.String(), nullable=True),
    ]


def _owner_column():
    return sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def _record_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_id', table, ['id'])
    op.create_index(f'ix_{table}_document_number', table, ['document_number'], unique=True)
    op.create_index(f'ix_{table}_created_at', table, ['created_at'])
    op.create_index(f'ix_{table}_slug', table, ['slug'])


def upgrade() -> None:
    """Upgrade schema."""
    user_role = sa.Enum('user', 'admin', 'dev', name='userrole')

    op.create_table(
        'users',
        *_record_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('photo', sa.String(), nullable=False, server_default='/images/users/default.jpg'),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('role', user_role, nullable=False, server_default='user'),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_reset_token', sa.String(), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    _record_indexes('users')
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_password_reset_token', 'users', ['password_reset_token'])

    op.create_table(
        'categories',
        *_record_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('image', sa.String(), nullable=False),
        sa.Column('image_cover', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        _owner_column(),
    )
    _record_indexes('categories')
    op.create_index('ix_categories_name', 'categories', ['name'], unique=True)
    op.create_index('ix_categories_user_id', 'categories', ['user_id'])

    for table in REFERENCE_TABLES:
        op.create_table(
            table,
            *_record_columns(),
            sa.Column('name', sa.String(), nullable=False),
            _owner_column(),
        )
        _record_indexes(table)
        op.create_index(f'ix_{table}_name', table, ['name'], unique=True)
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])

    op.create_table(
        'jobs',
        *_record_columns(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('level_id', sa.Integer(), sa.ForeignKey('levels.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('is_internship', sa.Boolean(), nullable=False, server_default=sa.false()),
        _owner_column(),
    )
    _record_indexes('jobs')
    op.create_index('ix_jobs_name', 'jobs', ['name'], unique=True)
    for column in ('location_id', 'department_id', 'level_id', 'is_internship', 'user_id'):
        op.create_index(f'ix_jobs_{column}', 'jobs', [column])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('jobs')
    for table in reversed(REFERENCE_TABLES):
        op.drop_table(table)
    op.drop_table('categories')
    op.drop_table('users')
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
