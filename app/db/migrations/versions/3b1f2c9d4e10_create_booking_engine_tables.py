from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f2c9d4e10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # 1️⃣ Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("driver_id", sa.String(), nullable=False),
        sa.Column("partner_id", sa.String(), nullable=False),
        sa.Column("vehicle_id", sa.String(), nullable=False),
        sa.Column("term_weeks", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending_partner_approval"),
        sa.Column("approval_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requires_documents", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("documents_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("driver_name", sa.String(), nullable=False, server_default=""),
        sa.Column("partner_name", sa.String(), nullable=False, server_default=""),
        sa.Column("vehicle_make", sa.String(), nullable=False, server_default=""),
        sa.Column("vehicle_model", sa.String(), nullable=False, server_default=""),
        sa.Column("vehicle_plate", sa.String(), nullable=False, server_default=""),
        sa.Column("vehicle_category", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_bookings_dates"),
        sa.CheckConstraint("updated_at >= created_at", name="ck_bookings_timestamps"),
    )
    for column in ("id", "driver_id", "partner_id", "vehicle_id", "status", "vehicle_category"):
        op.create_index(f"ix_bookings_{column}", "bookings", [column])

    # 2️⃣ Payment events (append-only)
    op.create_table(
        "payment_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("booking_id", sa.String(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payment_events_id", "payment_events", ["id"])
    op.create_index("ix_payment_events_booking_id", "payment_events", ["booking_id"])

    # 3️⃣ Recurring schedules (one active per booking)
    op.create_table(
        "recurring_schedules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("booking_id", sa.String(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount_per_cycle", sa.Float(), nullable=False),
        sa.Column("cycle_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_recurring_schedules_id", "recurring_schedules", ["id"])
    op.create_index("ix_recurring_schedules_booking_id", "recurring_schedules", ["booking_id"])
    op.create_index(
        "uq_recurring_schedules_active",
        "recurring_schedules",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # 4️⃣ Return requests (one live per booking)
    op.create_table(
        "return_requests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("booking_id", sa.String(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("requested_by", sa.String(), nullable=False, server_default="driver"),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(), nullable=True),
    )
    op.create_index("ix_return_requests_id", "return_requests", ["id"])
    op.create_index("ix_return_requests_booking_id", "return_requests", ["booking_id"])
    op.create_index(
        "uq_return_requests_live",
        "return_requests",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'approved')"),
        sqlite_where=sa.text("status IN ('pending', 'approved')"),
    )

    # 5️⃣ Issues
    op.create_table(
        "booking_issues",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("booking_id", sa.String(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("issue_type", sa.String(), nullable=False, server_default="other"),
        sa.Column("severity", sa.String(), nullable=False, server_default="medium"),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="open"),
        sa.Column("reported_by", sa.String(), nullable=False),
        sa.Column("reported_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(), nullable=True),
        sa.Column("resolution_notes", sa.String(), nullable=True),
    )
    op.create_index("ix_booking_issues_id", "booking_issues", ["id"])
    op.create_index("ix_booking_issues_booking_id", "booking_issues", ["booking_id"])

    # 6️⃣ Documents
    op.create_table(
        "documents",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("document_type", sa.String(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_documents_id", "documents", ["id"])
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])


def downgrade():
    op.drop_table("documents")
    op.drop_table("booking_issues")
    op.drop_table("return_requests")
    op.drop_table("recurring_schedules")
    op.drop_table("payment_events")
    op.drop_table("bookings")
