"""initial assessment engine schema

Revision ID: 5a1c0e7d2b90
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a1c0e7d2b90'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('id_number', sa.Integer(), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('role', sa.String(length=32), server_default='student', nullable=False),
        sa.Column('reading_level', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_id_number'), 'users', ['id_number'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'content_items',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('collection', sa.String(length=64), nullable=False),
        sa.Column('natural_key', sa.String(length=64), nullable=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('collection', 'natural_key', name='uq_content_items_collection_key')
    )
    op.create_index(op.f('ix_content_items_collection'), 'content_items', ['collection'], unique=False)
    op.create_index(op.f('ix_content_items_natural_key'), 'content_items', ['natural_key'], unique=False)

    op.create_table(
        'main_assessments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assessment_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('target_reading_level', sa.String(length=64), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('passing_threshold', sa.Integer(), server_default=sa.text('75'), nullable=False),
        sa.Column('status', sa.String(length=20), server_default=sa.text("'active'"), nullable=False),
        sa.Column('is_published', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_placeholder', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_main_assessments_assessment_id'), 'main_assessments', ['assessment_id'], unique=True)
    op.create_index(op.f('ix_main_assessments_category_id'), 'main_assessments', ['category_id'], unique=False)
    op.create_index(op.f('ix_main_assessments_target_reading_level'), 'main_assessments', ['target_reading_level'], unique=False)

    op.create_table(
        'customized_assessments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assessment_id', sa.String(length=64), nullable=False),
        sa.Column('original_assessment_id', sa.String(length=64), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('target_reading_level', sa.String(length=64), nullable=False),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('passing_threshold', sa.Integer(), server_default=sa.text('75'), nullable=False),
        sa.Column('status', sa.String(length=20), server_default=sa.text("'active'"), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['original_assessment_id'], ['main_assessments.assessment_id'], ),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_customized_assessments_assessment_id'), 'customized_assessments', ['assessment_id'], unique=True)
    op.create_index(op.f('ix_customized_assessments_original_assessment_id'), 'customized_assessments', ['original_assessment_id'], unique=False)
    op.create_index(op.f('ix_customized_assessments_student_id'), 'customized_assessments', ['student_id'], unique=False)

    op.create_table(
        'assessment_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assessment_id', sa.String(length=64), nullable=False),
        sa.Column('assessment_title', sa.String(length=255), nullable=False),
        sa.Column('template_assessment_id', sa.String(length=64), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('assigned_by', sa.Integer(), nullable=True),
        sa.Column('assigned_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('target_reading_level', sa.String(length=64), nullable=False),
        sa.Column('passing_threshold', sa.Integer(), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completion_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('total_assigned', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('completion_rate', sa.Float(), server_default=sa.text('0'), nullable=False),
        sa.Column('has_customization', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('customized_assessment_id', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['assigned_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['customized_assessment_id'], ['customized_assessments.assessment_id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_assessment_assignments_assessment_id'), 'assessment_assignments', ['assessment_id'], unique=False)
    op.create_index(op.f('ix_assessment_assignments_template_assessment_id'), 'assessment_assignments', ['template_assessment_id'], unique=False)
    op.create_index(op.f('ix_assessment_assignments_category_id'), 'assessment_assignments', ['category_id'], unique=False)

    op.create_table(
        'assignment_students',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('reading_level', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), server_default=sa.text("'pending'"), nullable=False),
        sa.ForeignKeyConstraint(['assignment_id'], ['assessment_assignments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_assignment_students_assignment_id'), 'assignment_students', ['assignment_id'], unique=False)
    op.create_index(op.f('ix_assignment_students_user_id'), 'assignment_students', ['user_id'], unique=False)

    op.create_table(
        'assessment_responses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assessment_id', sa.String(length=64), nullable=False),
        sa.Column('template_assessment_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('reading_level', sa.String(length=64), nullable=False),
        sa.Column('has_customization', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('customized_assessment_id', sa.String(length=64), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('raw_score', sa.Integer(), nullable=True),
        sa.Column('total_questions', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('percentage_score', sa.Float(), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('attempt_number', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('correct_answers', sa.JSON(), nullable=False),
        sa.Column('incorrect_answers', sa.JSON(), nullable=False),
        sa.Column('time_spent', sa.Float(), server_default=sa.text('0'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('teacher_feedback', sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column('teacher_reviewed_by', sa.Integer(), nullable=True),
        sa.Column('next_steps', sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('version_id', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.ForeignKeyConstraint(['assignment_id'], ['assessment_assignments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['teacher_reviewed_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_assessment_responses_assessment_id'), 'assessment_responses', ['assessment_id'], unique=False)
    op.create_index(op.f('ix_assessment_responses_user_id'), 'assessment_responses', ['user_id'], unique=False)
    op.create_index(op.f('ix_assessment_responses_assignment_id'), 'assessment_responses', ['assignment_id'], unique=False)

    op.create_table(
        'category_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('student_name', sa.String(length=255), server_default=sa.text("''"), nullable=False),
        sa.Column('reading_level', sa.String(length=64), server_default=sa.text("''"), nullable=False),
        sa.Column('catalog_version', sa.String(length=32), server_default=sa.text("'1'"), nullable=False),
        sa.Column('completed_categories', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('total_categories', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('overall_progress', sa.Float(), server_default=sa.text('0'), nullable=False),
        sa.Column('next_category_id', sa.Integer(), nullable=True),
        sa.Column('next_category_name', sa.String(length=120), nullable=True),
        sa.Column('next_assessment_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_category_progress_user_id'), 'category_progress', ['user_id'], unique=True)

    op.create_table(
        'category_progress_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('progress_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('category_name', sa.String(length=120), nullable=False),
        sa.Column('pre_assessment_completed', sa.Boolean(), nullable=False),
        sa.Column('pre_assessment_score', sa.Float(), nullable=True),
        sa.Column('pre_assessment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('main_assessment_completed', sa.Boolean(), nullable=False),
        sa.Column('main_assessment_id', sa.String(length=64), nullable=True),
        sa.Column('main_assessment_score', sa.Float(), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=False),
        sa.Column('passing_threshold', sa.Integer(), nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False),
        sa.Column('last_attempt_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completion_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['category_progress.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('progress_id', 'category_id', name='uq_category_progress_entry')
    )
    op.create_index(op.f('ix_category_progress_entries_progress_id'), 'category_progress_entries', ['progress_id'], unique=False)

    op.create_table(
        'student_profile_updates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('update_type', sa.String(length=50), nullable=False),
        sa.Column('previous_value', sa.String(length=255), nullable=True),
        sa.Column('new_value', sa.String(length=255), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('assessment_id', sa.String(length=64), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('update_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_student_profile_updates_user_id'), 'student_profile_updates', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_student_profile_updates_user_id'), table_name='student_profile_updates')
    op.drop_table('student_profile_updates')
    op.drop_index(op.f('ix_category_progress_entries_progress_id'), table_name='category_progress_entries')
    op.drop_table('category_progress_entries')
    op.drop_index(op.f('ix_category_progress_user_id'), table_name='category_progress')
    op.drop_table('category_progress')
    op.drop_index(op.f('ix_assessment_responses_assignment_id'), table_name='assessment_responses')
    op.drop_index(op.f('ix_assessment_responses_user_id'), table_name='assessment_responses')
    op.drop_index(op.f('ix_assessment_responses_assessment_id'), table_name='assessment_responses')
    op.drop_table('assessment_responses')
    op.drop_index(op.f('ix_assignment_students_user_id'), table_name='assignment_students')
    op.drop_index(op.f('ix_assignment_students_assignment_id'), table_name='assignment_students')
    op.drop_table('assignment_students')
    op.drop_index(op.f('ix_assessment_assignments_category_id'), table_name='assessment_assignments')
    op.drop_index(op.f('ix_assessment_assignments_template_assessment_id'), table_name='assessment_assignments')
    op.drop_index(op.f('ix_assessment_assignments_assessment_id'), table_name='assessment_assignments')
    op.drop_table('assessment_assignments')
    op.drop_index(op.f('ix_customized_assessments_student_id'), table_name='customized_assessments')
    op.drop_index(op.f('ix_customized_assessments_original_assessment_id'), table_name='customized_assessments')
    op.drop_index(op.f('ix_customized_assessments_assessment_id'), table_name='customized_assessments')
    op.drop_table('customized_assessments')
    op.drop_index(op.f('ix_main_assessments_target_reading_level'), table_name='main_assessments')
    op.drop_index(op.f('ix_main_assessments_category_id'), table_name='main_assessments')
    op.drop_index(op.f('ix_main_assessments_assessment_id'), table_name='main_assessments')
    op.drop_table('main_assessments')
    op.drop_index(op.f('ix_content_items_natural_key'), table_name='content_items')
    op.drop_index(op.f('ix_content_items_collection'), table_name='content_items')
    op.drop_table('content_items')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_index(op.f('ix_users_id_number'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
