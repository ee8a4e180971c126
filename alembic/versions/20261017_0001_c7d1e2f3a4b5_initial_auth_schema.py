"""initial auth schema

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-17

Creates the tables used by the login gate:
  users                   — accounts, verification flags, preferred language
  pending_otps            — one hashed code per (user, purpose); overwritten on reissue
  pending_login_sessions  — password-verified logins waiting for their OTP (one per user)
  login_history           — one row per login attempt, newest first per user
"""
from alembic import op
import sqlalchemy as sa

revision = 'c7d1e2f3a4b5'
down_revision = None
branch_labels = None
depends_on = None


OTP_PURPOSES = ('login', 'password_reset', 'audio_upload', 'language_switch', 'phone_verify')
LOGIN_STATUSES = ('success', 'failed', 'otp_required', 'time_restricted')
AUTH_METHODS = ('direct', 'otp_email', 'otp_sms')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('username', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('bio', sa.String(160), server_default='', nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('phone_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('preferred_language', sa.String(5), server_default='en', nullable=False),
        sa.Column('audio_upload_verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('password_reset_requested_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'pending_otps',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('purpose', sa.Enum(*OTP_PURPOSES, name='otp_purpose'), nullable=False),
        sa.Column('channel', sa.Enum('email', 'sms', name='otp_channel'), nullable=False),
        sa.Column('code_hash', sa.String(), nullable=False),
        sa.Column('context', sa.JSON(), nullable=True),
        sa.Column('issued_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('user_id', 'purpose', name='uq_pending_otps_user_purpose'),
    )
    op.create_index('ix_pending_otps_user_id', 'pending_otps', ['user_id'])

    op.create_table(
        'pending_login_sessions',
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  primary_key=True, nullable=False),
        sa.Column('jti', sa.String(64), nullable=False, unique=True),
        sa.Column('channel', sa.String(10), nullable=False),
        sa.Column('fingerprint', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    op.create_table(
        'login_history',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ip_address', sa.String(64), nullable=False),
        sa.Column('browser', sa.String(20), nullable=False),
        sa.Column('browser_version', sa.String(50), nullable=True),
        sa.Column('os', sa.String(30), nullable=False),
        sa.Column('os_version', sa.String(30), nullable=True),
        sa.Column('device', sa.String(20), nullable=False),
        sa.Column('user_agent', sa.Text(), nullable=False),
        sa.Column('login_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('login_status', sa.Enum(*LOGIN_STATUSES, name='login_status'), nullable=False),
        sa.Column('auth_method', sa.Enum(*AUTH_METHODS, name='auth_method'), nullable=False),
    )
    op.create_index('ix_login_history_user_id', 'login_history', ['user_id'])
    op.create_index('ix_login_history_ip_address', 'login_history', ['ip_address'])
    op.create_index('ix_login_history_user_time', 'login_history', ['user_id', 'login_time'])


def downgrade() -> None:
    op.drop_index('ix_login_history_user_time', table_name='login_history')
    op.drop_index('ix_login_history_ip_address', table_name='login_history')
    op.drop_index('ix_login_history_user_id', table_name='login_history')
    op.drop_table('login_history')
    op.drop_table('pending_login_sessions')
    op.drop_index('ix_pending_otps_user_id', table_name='pending_otps')
    op.drop_table('pending_otps')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')

    sa.Enum(name='auth_method').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='login_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='otp_channel').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='otp_purpose').drop(op.get_bind(), checkfirst=True)
