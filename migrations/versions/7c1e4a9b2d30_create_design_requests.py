"""create design_requests

Revision ID: 7c1e4a9b2d30
Revises:
Create Date: 2026-10-18 09:12:41.208115

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7c1e4a9b2d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('design_requests',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('requester_name', sa.String(length=255), nullable=False),
    sa.Column('requester_email', sa.String(length=255), nullable=False),
    sa.Column('department', sa.String(length=255), nullable=False),
    sa.Column('request_type', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('objective', sa.Text(), nullable=False),
    sa.Column('target_audience', sa.Text(), nullable=False),
    sa.Column('deadline', sa.Date(), nullable=False),
    sa.Column('priority', sa.String(length=50), nullable=False),
    sa.Column('dimensions', sa.String(length=255), nullable=True),
    sa.Column('color_preferences', sa.Text(), nullable=True),
    sa.Column('reference_links', sa.Text(), nullable=True),
    sa.Column('additional_notes', sa.Text(), nullable=True),
    sa.Column('reference_images', sa.JSON(), nullable=False),
    sa.Column('status', sa.String(length=50), nullable=False),
    sa.Column('external_card_id', sa.String(length=64), nullable=True),
    sa.Column('external_card_url', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('design_requests', schema=None) as batch_op:
        batch_op.create_index('ix_design_requests_status_created_at', ['status', 'created_at'], unique=False)


def downgrade():
    with op.batch_alter_table('design_requests', schema=None) as batch_op:
        batch_op.drop_index('ix_design_requests_status_created_at')

    op.drop_table('design_requests')
