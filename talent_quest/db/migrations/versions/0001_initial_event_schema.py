"""Initial event schema.

- users (staff accounts)
- students, guests
- singles, groups, group_members, performances
- requirements, health_fitness, consents, endorsements
- qr_codes, attendance_logs
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_event_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _pk(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), primary_key=True, autoincrement=True)


def _now(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _student_fk(nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        "student_id",
        sa.Integer(),
        sa.ForeignKey("students.student_id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _pk("user_id"),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
        _now("created_at"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "students",
        _pk("student_id"),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.Text(), nullable=True),
        sa.Column("school", sa.Text(), nullable=True),
        sa.Column("course_year", sa.Text(), nullable=True),
        sa.Column("contact_number", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        _now("created_at"),
    )

    op.create_table(
        "guests",
        _pk("guest_id"),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.Text(), nullable=True),
        sa.Column("contact_number", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("organization", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        _now("registration_date"),
    )

    op.create_table(
        "singles",
        _pk("single_id"),
        _student_fk(nullable=True, ondelete="SET NULL"),
        sa.Column("performance_title", sa.Text(), nullable=True),
        sa.Column("performance_description", sa.Text(), nullable=True),
        _now("created_at"),
    )
    op.create_index("ix_singles_student_id", "singles", ["student_id"])

    op.create_table(
        "groups",
        _pk("group_id"),
        sa.Column("group_name", sa.Text(), nullable=False),
        sa.Column(
            "leader_id",
            sa.Integer(),
            sa.ForeignKey("students.student_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("performance_type", sa.Text(), nullable=True),
        sa.Column("performance_title", sa.Text(), nullable=True),
        sa.Column("performance_description", sa.Text(), nullable=True),
        _now("created_at"),
    )

    op.create_table(
        "group_members",
        _pk("group_member_id"),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.group_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _student_fk(),
        sa.Column("is_leader", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_student_id", "group_members", ["student_id"])

    op.create_table(
        "performances",
        _pk("performance_id"),
        _student_fk(),
        sa.Column("performance_type", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("duration", sa.Text(), nullable=True),
        sa.Column("num_performers", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("group_members", sa.Text(), nullable=True),
        _now("created_at"),
    )
    op.create_index("ix_performances_student_id", "performances", ["student_id"])

    op.create_table(
        "requirements",
        _pk("requirement_id"),
        _student_fk(),
        sa.Column("certification_url", sa.Text(), nullable=True),
        sa.Column("school_id_url", sa.Text(), nullable=True),
        _now("uploaded_at"),
    )
    op.create_index("ix_requirements_student_id", "requirements", ["student_id"])

    op.create_table(
        "health_fitness",
        _pk("declaration_id"),
        _student_fk(),
        sa.Column("is_physically_fit", sa.Boolean(), nullable=False),
        sa.Column("medical_conditions", sa.Text(), nullable=True),
        sa.Column("student_signature_url", sa.Text(), nullable=True),
        sa.Column("parent_guardian_signature_url", sa.Text(), nullable=True),
        _now("declaration_date"),
    )
    op.create_index("ix_health_fitness_student_id", "health_fitness", ["student_id"])

    op.create_table(
        "consents",
        _pk("consent_id"),
        _student_fk(),
        sa.Column("info_correct", sa.Boolean(), nullable=False),
        sa.Column("agree_to_rules", sa.Boolean(), nullable=False),
        sa.Column("consent_to_publicity", sa.Boolean(), nullable=False),
        sa.Column("student_signature_url", sa.Text(), nullable=True),
        sa.Column("parent_guardian_signature_url", sa.Text(), nullable=True),
        _now("consent_date"),
    )
    op.create_index("ix_consents_student_id", "consents", ["student_id"])

    op.create_table(
        "endorsements",
        _pk("endorsement_id"),
        _student_fk(),
        sa.Column("school_official_name", sa.Text(), nullable=True),
        sa.Column("position", sa.Text(), nullable=True),
        sa.Column("signature_url", sa.Text(), nullable=True),
        _now("endorsement_date"),
    )
    op.create_index("ix_endorsements_student_id", "endorsements", ["student_id"])

    op.create_table(
        "qr_codes",
        _pk("qr_id"),
        sa.Column("qr_code_url", sa.Text(), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.group_id", ondelete="CASCADE"), nullable=True),
        sa.Column("single_id", sa.Integer(), sa.ForeignKey("singles.single_id", ondelete="CASCADE"), nullable=True),
        sa.Column("guest_id", sa.Integer(), sa.ForeignKey("guests.guest_id", ondelete="CASCADE"), nullable=True),
        _now("created_at"),
    )
    op.create_index("ix_qr_codes_group_id", "qr_codes", ["group_id"])
    op.create_index("ix_qr_codes_single_id", "qr_codes", ["single_id"])
    op.create_index("ix_qr_codes_guest_id", "qr_codes", ["guest_id"])

    op.create_table(
        "attendance_logs",
        _pk("attendance_id"),
        sa.Column("qr_id", sa.Integer(), sa.ForeignKey("qr_codes.qr_id", ondelete="CASCADE"), nullable=False),
        _now("scan_time"),
        sa.Column("scanned_by", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="checked_in"),
    )
    op.create_index("ix_attendance_logs_qr_id", "attendance_logs", ["qr_id"])


def downgrade() -> None:
    for table in (
        "attendance_logs",
        "qr_codes",
        "endorsements",
        "consents",
        "health_fitness",
        "requirements",
        "performances",
        "group_members",
        "groups",
        "singles",
        "guests",
        "students",
        "users",
    ):
        op.drop_table(table)
