"""Initial schema: works, declarations, revisions, audio references, process capture.

Revision ID: 001
Revises:
Create Date: 2026-01-12
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'works',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_works_created_at', 'works', ['created_at'])

    op.create_table(
        'declarations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('work_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('intent', sa.Text(), nullable=False),
        sa.Column('tools', sa.Text(), nullable=False),
        sa.Column('ai_used', sa.Boolean(), nullable=False),
        sa.Column('contributors', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['work_id'], ['works.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_declarations_work_id', 'declarations', ['work_id'], unique=True)

    op.create_table(
        'declaration_revisions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('declaration_id', sa.String(36), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('change_note', sa.Text(), nullable=False),
        sa.Column('intent', sa.Text(), nullable=True),
        sa.Column('tools', sa.Text(), nullable=True),
        sa.Column('ai_used', sa.Boolean(), nullable=True),
        sa.Column('contributors', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['declaration_id'], ['declarations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('declaration_id', 'sequence', name='uq_revision_declaration_sequence'),
    )
    op.create_index('ix_declaration_revisions_declaration_id', 'declaration_revisions', ['declaration_id'])
    op.create_index('ix_declaration_revisions_created_at', 'declaration_revisions', ['created_at'])

    op.create_table(
        'audio_references',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('declaration_id', sa.String(36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('file_name', sa.String(500), nullable=False),
        sa.Column('sha256', sa.String(64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['declaration_id'], ['declarations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audio_references_declaration_id', 'audio_references', ['declaration_id'])
    op.create_index('ix_audio_references_sha256', 'audio_references', ['sha256'])

    op.create_table(
        'process_declarations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('platform', sa.String(32), nullable=False),
        sa.Column('session_started_at', sa.DateTime(), nullable=False),
        sa.Column('session_ended_at', sa.DateTime(), nullable=True),
        sa.Column('session_duration', sa.Integer(), nullable=True),
        sa.Column('iteration_count', sa.Integer(), nullable=False),
        sa.Column('prompt_lineage', sa.JSON(), nullable=False),
        sa.Column('rejected_outputs', sa.JSON(), nullable=False),
        sa.Column('selected_output', sa.JSON(), nullable=True),
        sa.Column('consent_for_training_data', sa.Boolean(), nullable=False),
        sa.Column('consent_timestamp', sa.DateTime(), nullable=True),
        sa.Column('consent_version', sa.String(50), nullable=True),
        sa.Column('contributor_id', sa.String(255), nullable=True),
        sa.Column('contributor_expertise_tags', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_process_declarations_created_at', 'process_declarations', ['created_at'])
    op.create_index('ix_process_declarations_platform', 'process_declarations', ['platform'])
    op.create_index(
        'ix_process_declarations_consent_for_training_data',
        'process_declarations',
        ['consent_for_training_data'],
    )
    op.create_index('ix_process_declarations_contributor_id', 'process_declarations', ['contributor_id'])

    op.create_table(
        'contributors',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('anonymous_id', sa.String(255), nullable=False),
        sa.Column('total_contributions', sa.Integer(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('current_tier', sa.String(20), nullable=False),
        sa.Column('taste_score', sa.Float(), nullable=False),
        sa.Column('expertise_tags', sa.JSON(), nullable=False),
        sa.Column('platform_stats', sa.JSON(), nullable=False),
        sa.Column('consent_version', sa.String(50), nullable=True),
        sa.Column('consent_timestamp', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contributors_anonymous_id', 'contributors', ['anonymous_id'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_contributors_anonymous_id', table_name='contributors')
    op.drop_table('contributors')
    op.drop_index('ix_process_declarations_contributor_id', table_name='process_declarations')
    op.drop_index('ix_process_declarations_consent_for_training_data', table_name='process_declarations')
    op.drop_index('ix_process_declarations_platform', table_name='process_declarations')
    op.drop_index('ix_process_declarations_created_at', table_name='process_declarations')
    op.drop_table('process_declarations')
    op.drop_index('ix_audio_references_sha256', table_name='audio_references')
    op.drop_index('ix_audio_references_declaration_id', table_name='audio_references')
    op.drop_table('audio_references')
    op.drop_index('ix_declaration_revisions_created_at', table_name='declaration_revisions')
    op.drop_index('ix_declaration_revisions_declaration_id', table_name='declaration_revisions')
    op.drop_table('declaration_revisions')
    op.drop_index('ix_declarations_work_id', table_name='declarations')
    op.drop_table('declarations')
    op.drop_index('ix_works_created_at', table_name='works')
    op.drop_table('works')
