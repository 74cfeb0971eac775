"""create waitlist entries table

Revision ID: waitlist_entries
Revises:
Create Date: 2025-10-19

"""
from alembic import op
import sqlalchemy as sa

from app.core.types import GUID

# revision identifiers, used by Alembic.
revision = 'waitlist_entries'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'waitlist_entries',
        sa.Column('id', GUID(), primary_key=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('source', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('email', name='uq_waitlist_email'),
        sa.UniqueConstraint('phone', name='uq_waitlist_phone'),
        sa.CheckConstraint('email IS NOT NULL OR phone IS NOT NULL', name='ck_waitlist_contact'),
    )
    op.create_index('ix_waitlist_entries_email', 'waitlist_entries', ['email'])
    op.create_index('ix_waitlist_entries_phone', 'waitlist_entries', ['phone'])

def downgrade():
    op.drop_index('ix_waitlist_entries_phone', table_name='waitlist_entries')
    op.drop_index('ix_waitlist_entries_email', table_name='waitlist_entries')
    op.drop_table('waitlist_entries')
