"""device details on login history, notification settings on users

Revision ID: d8e2f3a4b5c6
Revises: c7d1e2f3a4b5
Create Date: 2026-10-17

  login_history  — browser_full_name, platform, device_vendor, device_model
  users          — notifications_enabled, notification_keywords,
                   browser_notification_permission
"""
from alembic import op
import sqlalchemy as sa

revision = 'd8e2f3a4b5c6'
down_revision = 'c7d1e2f3a4b5'
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table('login_history') as batch_op:
        batch_op.add_column(sa.Column('browser_full_name', sa.String(50), nullable=True))
        batch_op.add_column(sa.Column('platform', sa.String(30), nullable=True))
        batch_op.add_column(sa.Column('device_vendor', sa.String(50), nullable=True))
        batch_op.add_column(sa.Column('device_model', sa.String(100), nullable=True))

    with op.batch_alter_table('users') as batch_op:
        batch_op.add_column(
            sa.Column('notifications_enabled', sa.Boolean(), server_default=sa.true(), nullable=False)
        )
        batch_op.add_column(sa.Column('notification_keywords', sa.JSON(), nullable=True))
        batch_op.add_column(
            sa.Column('browser_notification_permission', sa.Boolean(), server_default=sa.false(), nullable=False)
        )


def downgrade() -> None:
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_column('browser_notification_permission')
        batch_op.drop_column('notification_keywords')
        batch_op.drop_column('notifications_enabled')

    with op.batch_alter_table('login_history') as batch_op:
        batch_op.drop_column('device_model')
        batch_op.drop_column('device_vendor')
        batch_op.drop_column('platform')
        batch_op.drop_column('browser_full_name')
