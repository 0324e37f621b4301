"""Create pose detections table

Revision ID: 8c4e2a7f1b90
Revises: 3b1f6c2a9d47
Create Date: 2026-10-18 14:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8c4e2a7f1b90'
down_revision: Union[str, None] = '3b1f6c2a9d47'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'pose_detections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('valid_poses_detected', sa.Integer(), nullable=False),
        sa.Column('best_pose_accuracy', sa.Float(), nullable=False),
        sa.Column('joints_detected', sa.String(length=20), nullable=False),
        sa.Column('critical_joints_detected', sa.Boolean(), nullable=False),
        sa.Column('body_detection', sa.JSON(), nullable=False),
        sa.Column('proportions', sa.JSON(), nullable=True),
        sa.Column('joints', sa.JSON(), nullable=False),
        sa.Column('scan_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('device_info', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_pose_detections_id'), 'pose_detections', ['id'], unique=False)
    op.create_index(op.f('ix_pose_detections_best_pose_accuracy'), 'pose_detections', ['best_pose_accuracy'], unique=False)
    op.create_index('ix_pose_detections_patient_scan_date', 'pose_detections', ['patient_id', 'scan_date'], unique=False)
    op.create_index('ix_pose_detections_created_by_scan_date', 'pose_detections', ['created_by', 'scan_date'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_pose_detections_created_by_scan_date', table_name='pose_detections')
    op.drop_index('ix_pose_detections_patient_scan_date', table_name='pose_detections')
    op.drop_index(op.f('ix_pose_detections_best_pose_accuracy'), table_name='pose_detections')
    op.drop_index(op.f('ix_pose_detections_id'), table_name='pose_detections')
    op.drop_table('pose_detections')
