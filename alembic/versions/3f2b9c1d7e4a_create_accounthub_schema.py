"""create_accounthub_schema

Revision ID: 3f2b9c1d7e4a
Revises:
Create Date: 2026-10-19 09:12:41.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2b9c1d7e4a'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _soft_delete() -> sa.Column:
    return sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    """
    Create the identity, membership and group schema.

    Creates:
    - users, accounts, tenants, roles
    - memberships (one live row per account/tenant)
    - account_groups, account_to_account_group (one live row per account/group)
    - auth_sessions
    """
    # 1. Identities
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)

    # 2. Tenants and roles
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('kind', sa.String(length=8), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('deleted_by', sa.Integer(), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['deleted_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('kind', sa.String(length=13), nullable=False),
        sa.Column('allowed', sa.JSON(), nullable=False),
        *_timestamps(),
        _soft_delete(),
        sa.PrimaryKeyConstraint('id')
    )

    # 3. Memberships
    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id']),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_memberships_account_id', 'memberships', ['account_id'])
    op.create_index('ix_memberships_tenant_id', 'memberships', ['tenant_id'])
    op.create_index(
        'uq_memberships_live_account_tenant',
        'memberships',
        ['account_id', 'tenant_id'],
        unique=True,
        sqlite_where=sa.text('deleted_at IS NULL'),
        postgresql_where=sa.text('deleted_at IS NULL'),
    )

    # 4. Groups
    op.create_table(
        'account_groups',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('parent_group_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['parent_group_id'], ['account_groups.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_account_groups_tenant_id', 'account_groups', ['tenant_id'])
    op.create_index('ix_account_groups_parent_group_id', 'account_groups', ['parent_group_id'])

    op.create_table(
        'account_to_account_group',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('account_group_id', sa.Integer(), nullable=False),
        *_timestamps(),
        _soft_delete(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id']),
        sa.ForeignKeyConstraint(['account_group_id'], ['account_groups.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_account_to_account_group_account_id', 'account_to_account_group', ['account_id']
    )
    op.create_index(
        'ix_account_to_account_group_account_group_id',
        'account_to_account_group',
        ['account_group_id'],
    )
    op.create_index(
        'uq_account_to_account_group_live',
        'account_to_account_group',
        ['account_id', 'account_group_id'],
        unique=True,
        sqlite_where=sa.text('deleted_at IS NULL'),
        postgresql_where=sa.text('deleted_at IS NULL'),
    )

    # 5. Sessions
    op.create_table(
        'auth_sessions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('active_account_id', sa.Integer(), nullable=False),
        sa.Column('active_tenant_id', sa.Integer(), nullable=False),
        sa.Column('session_accounts', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_verified_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['active_account_id'], ['accounts.id']),
        sa.ForeignKeyConstraint(['active_tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_auth_sessions_user_id', 'auth_sessions', ['user_id'])


def downgrade() -> None:
    """Drop everything, dependents first."""
    op.drop_index('ix_auth_sessions_user_id', table_name='auth_sessions')
    op.drop_table('auth_sessions')

    op.drop_index('uq_account_to_account_group_live', table_name='account_to_account_group')
    op.drop_index(
        'ix_account_to_account_group_account_group_id', table_name='account_to_account_group'
    )
    op.drop_index('ix_account_to_account_group_account_id', table_name='account_to_account_group')
    op.drop_table('account_to_account_group')

    op.drop_index('ix_account_groups_parent_group_id', table_name='account_groups')
    op.drop_index('ix_account_groups_tenant_id', table_name='account_groups')
    op.drop_table('account_groups')

    op.drop_index('uq_memberships_live_account_tenant', table_name='memberships')
    op.drop_index('ix_memberships_tenant_id', table_name='memberships')
    op.drop_index('ix_memberships_account_id', table_name='memberships')
    op.drop_table('memberships')

    op.drop_table('roles')
    op.drop_table('tenants')

    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_index('ix_accounts_user_id', table_name='accounts')
    op.drop_table('accounts')

    op.drop_table('users')
