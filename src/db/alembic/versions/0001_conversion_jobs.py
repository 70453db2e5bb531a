from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '0001_conversion_jobs'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('conversion_jobs',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('owner_id', sa.Text(), nullable=False),
        sa.Column('source_file_name', sa.Text(), nullable=False),
        sa.Column('source_kind', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='processing'),
        sa.Column('stage', sa.Text(), nullable=False, server_default='created'),
        sa.Column('progress_percent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('slides', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('artifact_location', sa.Text(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('error_code', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint("status in ('processing', 'completed', 'failed')",
                           name='conversion_jobs_status_check'),
        sa.CheckConstraint('progress_percent between 0 and 100', name='conversion_jobs_progress_check'),
    )
    op.create_index('ix_conversion_jobs_owner_id', 'conversion_jobs', ['owner_id'])
    op.create_index('ix_conversion_jobs_updated_at', 'conversion_jobs', ['updated_at'])
    op.create_index('ix_conversion_jobs_owner_created_desc', 'conversion_jobs',
                    ['owner_id', sa.text('created_at DESC')])
    op.create_index('ix_conversion_jobs_status', 'conversion_jobs', ['status'])


def downgrade():
    op.drop_index('ix_conversion_jobs_status', table_name='conversion_jobs')
    op.drop_index('ix_conversion_jobs_owner_created_desc', table_name='conversion_jobs')
    op.drop_index('ix_conversion_jobs_updated_at', table_name='conversion_jobs')
    op.drop_index('ix_conversion_jobs_owner_id', table_name='conversion_jobs')
    op.drop_table('conversion_jobs')
