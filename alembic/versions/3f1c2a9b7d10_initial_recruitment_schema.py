"""initial recruitment schema

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create masters, applicant profile, application, payment and merit tables."""

    # Masters
    op.create_table('district_master',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('district_name', sa.String(length=100), nullable=False),
        sa.Column('district_code', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('district_code')
    )
    op.create_table('components',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('component_name', sa.String(length=150), nullable=False),
        sa.Column('component_code', sa.String(length=30), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('component_code')
    )
    op.create_table('document_types',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('doc_code', sa.String(length=50), nullable=False),
        sa.Column('doc_name', sa.String(length=150), nullable=False),
        sa.Column('is_mandatory', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('doc_code')
    )
    op.create_table('education_levels',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('level_name', sa.String(length=100), nullable=False),
        sa.Column('level_code', sa.String(length=30), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('doc_type_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['doc_type_id'], ['document_types.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('level_code')
    )
    op.create_table('experience_domains',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('domain_name', sa.String(length=150), nullable=False),
        sa.Column('doc_type_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['doc_type_id'], ['document_types.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('admin_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('full_name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # Posts
    op.create_table('post_master',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_name', sa.String(length=150), nullable=False),
        sa.Column('post_code', sa.String(length=50), nullable=False),
        sa.Column('component_id', sa.Integer(), nullable=True),
        sa.Column('district_id', sa.Integer(), nullable=True),
        sa.Column('min_age', sa.Integer(), nullable=True),
        sa.Column('max_age', sa.Integer(), nullable=True),
        sa.Column('min_education_level_id', sa.Integer(), nullable=True),
        sa.Column('max_education_level_id', sa.Integer(), nullable=True),
        sa.Column('min_experience_months', sa.Integer(), nullable=False),
        sa.Column('total_positions', sa.Integer(), nullable=False),
        sa.Column('filled_positions', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False),
        sa.Column('closing_date', sa.Date(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by', sa.String(length=50), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['component_id'], ['components.id']),
        sa.ForeignKeyConstraint(['district_id'], ['district_master.id']),
        sa.ForeignKeyConstraint(['min_education_level_id'], ['education_levels.id']),
        sa.ForeignKeyConstraint(['max_education_level_id'], ['education_levels.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_code'),
        sa.CheckConstraint('filled_positions <= total_positions', name='ck_post_capacity')
    )
    op.create_index(op.f('ix_post_master_post_name'), 'post_master', ['post_name'], unique=False)
    op.create_table('post_document_requirements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('doc_type_id', sa.Integer(), nullable=False),
        sa.Column('requirement_type', sa.String(length=1), nullable=False),
        sa.Column('mandatory_at_application', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['post_master.id']),
        sa.ForeignKeyConstraint(['doc_type_id'], ['document_types.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_post_document_requirements_post_id'), 'post_document_requirements', ['post_id'], unique=False)

    # Applicant profile
    op.create_table('applicant_master',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('mobile_no', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_table('applicant_personal',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=150), nullable=True),
        sa.Column('dob', sa.Date(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('category', sa.String(length=30), nullable=True),
        sa.Column('aadhaar_no', sa.String(length=20), nullable=True),
        sa.Column('is_domicile', sa.Boolean(), nullable=False),
        sa.Column('has_experience', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('applicant_id')
    )
    op.create_table('applicant_address',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('address_line', sa.Text(), nullable=True),
        sa.Column('district_id', sa.Integer(), nullable=True),
        sa.Column('permanent_district_id', sa.Integer(), nullable=True),
        sa.Column('pincode', sa.String(length=10), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['district_id'], ['district_master.id']),
        sa.ForeignKeyConstraint(['permanent_district_id'], ['district_master.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('applicant_id')
    )
    op.create_table('applicant_education',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('education_level_id', sa.Integer(), nullable=True),
        sa.Column('passing_year', sa.Integer(), nullable=True),
        sa.Column('percentage', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('certificate_path', sa.String(length=255), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['education_level_id'], ['education_levels.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applicant_education_applicant_id'), 'applicant_education', ['applicant_id'], unique=False)
    op.create_table('applicant_experience',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('domain_id', sa.Integer(), nullable=True),
        sa.Column('organization_name', sa.String(length=200), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=False),
        sa.Column('total_months', sa.Integer(), nullable=True),
        sa.Column('certificate_path', sa.String(length=255), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['domain_id'], ['experience_domains.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applicant_experience_applicant_id'), 'applicant_experience', ['applicant_id'], unique=False)
    op.create_table('applicant_documents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('doc_type_id', sa.Integer(), nullable=True),
        sa.Column('doc_type', sa.String(length=50), nullable=True),
        sa.Column('file_path', sa.String(length=255), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['doc_type_id'], ['document_types.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applicant_documents_applicant_id'), 'applicant_documents', ['applicant_id'], unique=False)

    # Applications
    op.create_table('applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_no', sa.String(length=20), nullable=True),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('district_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('selection_status', sa.String(length=30), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False),
        sa.Column('declaration_accepted', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('system_eligibility', sa.Boolean(), nullable=True),
        sa.Column('system_eligibility_reason', sa.Text(), nullable=True),
        sa.Column('eligibility_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('merit_score', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('document_verified', sa.Boolean(), nullable=False),
        sa.Column('verified_by', sa.Integer(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verification_remarks', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('auto_rejected_reason', sa.Text(), nullable=True),
        sa.Column('selected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('selected_by', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('dob', sa.Date(), nullable=True),
        sa.Column('aadhaar_no', sa.String(length=20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_domicile', sa.Boolean(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['post_id'], ['post_master.id']),
        sa.ForeignKeyConstraint(['district_id'], ['district_master.id']),
        sa.ForeignKeyConstraint(['verified_by'], ['admin_users.id']),
        sa.ForeignKeyConstraint(['selected_by'], ['admin_users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_no')
    )
    op.create_index(op.f('ix_applications_applicant_id'), 'applications', ['applicant_id'], unique=False)
    op.create_index(op.f('ix_applications_post_id'), 'applications', ['post_id'], unique=False)
    op.create_index(op.f('ix_applications_status'), 'applications', ['status'], unique=False)

    op.create_table('applicant_acknowledgements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=True),
        sa.Column('action_type', sa.String(length=50), nullable=False),
        sa.Column('checkbox_code', sa.String(length=50), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('place', sa.String(length=150), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_applicant_acknowledgements_applicant_id'), 'applicant_acknowledgements', ['applicant_id'], unique=False)

    op.create_table('application_status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('old_status', sa.String(length=30), nullable=True),
        sa.Column('new_status', sa.String(length=30), nullable=False),
        sa.Column('changed_by', sa.Integer(), nullable=True),
        sa.Column('changed_by_type', sa.String(length=20), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('metadata', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_application_status_history_application_id'), 'application_status_history', ['application_id'], unique=False)

    op.create_table('application_stage_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('stage', sa.String(length=30), nullable=False),
        sa.Column('entered_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('entered_by', sa.Integer(), nullable=True),
        sa.Column('entered_by_type', sa.String(length=20), nullable=False),
        sa.Column('exited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('exited_by', sa.Integer(), nullable=True),
        sa.Column('exited_by_type', sa.String(length=20), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_application_stage_history_application_id'), 'application_stage_history', ['application_id'], unique=False)

    op.create_table('eligibility_results',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('is_eligible', sa.Boolean(), nullable=False),
        sa.Column('checks', JSONType, nullable=True),
        sa.Column('failed_checks', JSONType, nullable=True),
        sa.Column('missing_documents', JSONType, nullable=True),
        sa.Column('evaluated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id')
    )

    op.create_table('document_verifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('verification_status', sa.String(length=20), nullable=False),
        sa.Column('verified_by', sa.Integer(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.ForeignKeyConstraint(['document_id'], ['applicant_documents.id']),
        sa.ForeignKeyConstraint(['verified_by'], ['admin_users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id', 'document_id', name='uq_document_verification')
    )
    op.create_index(op.f('ix_document_verifications_application_id'), 'document_verifications', ['application_id'], unique=False)

    op.create_table('sequence_counters',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('counter_type', sa.String(length=30), nullable=False),
        sa.Column('year_month', sa.String(length=5), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('counter_type', 'year_month', name='uq_sequence_counter')
    )

    # Payments
    op.create_table('payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('applicant_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('post_name', sa.String(length=150), nullable=False),
        sa.Column('district_id', sa.Integer(), nullable=True),
        sa.Column('application_id', sa.Integer(), nullable=True),
        sa.Column('base_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('platform_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('cgst', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('sgst', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=False),
        sa.Column('gateway_payment_id', sa.String(length=100), nullable=True),
        sa.Column('gateway_signature', sa.String(length=255), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['applicant_id'], ['applicant_master.id']),
        sa.ForeignKeyConstraint(['post_id'], ['post_master.id']),
        sa.ForeignKeyConstraint(['district_id'], ['district_master.id']),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_applicant_id'), 'payments', ['applicant_id'], unique=False)
    op.create_index(op.f('ix_payments_post_name'), 'payments', ['post_name'], unique=False)
    op.create_index(op.f('ix_payments_payment_status'), 'payments', ['payment_status'], unique=False)
    op.create_index(op.f('ix_payments_gateway_order_id'), 'payments', ['gateway_order_id'], unique=True)

    # Merit list
    op.create_table('merit_list',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('district_id', sa.Integer(), nullable=True),
        sa.Column('score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('education_score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('marks_score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('experience_score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('age_score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('local_preference_score', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('is_local_candidate', sa.Boolean(), nullable=False),
        sa.Column('selection_status', sa.String(length=30), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('generated_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.ForeignKeyConstraint(['post_id'], ['post_master.id']),
        sa.ForeignKeyConstraint(['district_id'], ['district_master.id']),
        sa.ForeignKeyConstraint(['generated_by'], ['admin_users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'district_id', 'application_id', name='uq_merit_entry')
    )
    op.create_index(op.f('ix_merit_list_application_id'), 'merit_list', ['application_id'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'merit_list', 'payments', 'sequence_counters', 'document_verifications', 'eligibility_results',
        'application_stage_history', 'application_status_history', 'applicant_acknowledgements',
        'applications', 'applicant_documents', 'applicant_experience', 'applicant_education',
        'applicant_address', 'applicant_personal', 'applicant_master', 'post_document_requirements',
        'post_master', 'admin_users', 'experience_domains', 'education_levels', 'document_types',
        'components', 'district_master',
    ):
        op.drop_table(table)
