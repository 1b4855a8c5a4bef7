"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all database tables for the Trainer Ledger:
- students: Student records with lesson package and payment balance
- student_history: Append-only audit trail of ledger commands
- student_measurements: Body measurements over time
- trainers: Accounts allowed to sign in

History and measurements reference students without a foreign key:
deleting a student leaves its child records in place.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('total_lessons', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('remaining_lessons', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_fee', sa.Float(), nullable=True),
        sa.Column('balance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_students_name', 'students', ['name'])

    # ── Student History Table ─────────────────────────────────
    op.create_table(
        'student_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('student_id', sa.String(36), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_student_history_student_id_date', 'student_history',
                    ['student_id', 'date'])

    # ── Student Measurements Table ────────────────────────────
    op.create_table(
        'student_measurements',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('student_id', sa.String(36), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('body_fat_pct', sa.Float(), nullable=True),
        sa.Column('waist', sa.Float(), nullable=True),
        sa.Column('hip', sa.Float(), nullable=True),
    )
    op.create_index('ix_student_measurements_student_id_date', 'student_measurements',
                    ['student_id', 'date'])

    # ── Trainers Table ────────────────────────────────────────
    op.create_table(
        'trainers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('trainers')
    op.drop_index('ix_student_measurements_student_id_date', table_name='student_measurements')
    op.drop_table('student_measurements')
    op.drop_index('ix_student_history_student_id_date', table_name='student_history')
    op.drop_table('student_history')
    op.drop_index('ix_students_name', table_name='students')
    op.drop_table('students')
