"""Initial schema: users, test history and progress

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy Enum columns store member names; types are created once, up front
test_family = postgresql.ENUM('SHSAT', 'SAT', 'PSAT', 'STATE', name='testfamily', create_type=False)
user_role = postgresql.ENUM('STUDENT', 'ADMIN', name='userrole', create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    test_family.create(bind, checkfirst=True)
    user_role.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=50)),
        sa.Column('last_name', sa.String(length=50)),
        sa.Column('grade', sa.String(length=2)),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'test_history_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'user_id',
            sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('test_type', test_family, nullable=False),
        sa.Column('practice_set', sa.String(length=50), nullable=False),
        sa.Column('section_type', sa.String(length=20)),
        sa.Column('test_name', sa.String(length=255), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('results', sa.JSON(), nullable=False),
        sa.Column('scaled_scores', sa.JSON()),
        sa.Column('detailed_results', sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_test_history_entries_id', 'test_history_entries', ['id'])
    op.create_index('ix_test_history_entries_user_id', 'test_history_entries', ['user_id'])

    op.create_table(
        'test_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'user_id',
            sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('test_type', test_family, nullable=False),
        sa.Column('tests_completed', sa.Integer(), nullable=False),
        sa.Column('average_score', sa.Float(), nullable=False),
        sa.Column('best_score', sa.Float(), nullable=False),
        sa.Column('time_spent', sa.Integer(), nullable=False),
        sa.Column('last_attempt', sa.DateTime(timezone=True)),
        sa.Column('latest_scaled_score', sa.JSON()),
        sa.Column('best_scaled_score', sa.JSON()),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'test_type', name='uq_test_progress_user_type'),
    )
    op.create_index('ix_test_progress_id', 'test_progress', ['id'])
    op.create_index('ix_test_progress_user_id', 'test_progress', ['user_id'])

    op.create_table(
        'category_performance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'user_id',
            sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('test_type', test_family, nullable=False),
        sa.Column('category', sa.String(length=255), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('average_score', sa.Integer(), nullable=False),
        sa.Column('mastery_level', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            'user_id',
            'test_type',
            'category',
            name='uq_category_performance_user_type_category',
        ),
    )
    op.create_index('ix_category_performance_id', 'category_performance', ['id'])
    op.create_index('ix_category_performance_user_id', 'category_performance', ['user_id'])


def downgrade() -> None:
    op.drop_table('category_performance')
    op.drop_table('test_progress')
    op.drop_table('test_history_entries')
    op.drop_table('users')
    test_family.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
