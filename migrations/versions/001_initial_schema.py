"""Initial schema: users, drivers, orders and the back-office tables.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ORDER_PREDICATE = "completed_at IS NULL AND cancelled_at IS NULL"


def _timestamps(*names: str) -> list:
    return [sa.Column(name, sa.DateTime(timezone=True), nullable=True) for name in names]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("phone_number", sa.String(32), unique=True, nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="customer"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), unique=True, nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("vehicle_plate", sa.String(20), nullable=True),
        sa.Column("vehicle_model", sa.String(80), nullable=True),
        sa.Column("vehicle_year", sa.Integer, nullable=True),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("current_order_id", sa.Integer, nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="5.0"),
        sa.Column("total_trips", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_drivers_available", "drivers", ["is_available", "is_approved"])
    op.create_index("idx_drivers_current_order", "drivers", ["current_order_id"])

    # ── orders ────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("pickup_address", sa.String(500), nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("destination_address", sa.String(500), nullable=False),
        sa.Column("destination_lat", sa.Float, nullable=False),
        sa.Column("destination_lng", sa.Float, nullable=False),
        sa.Column("distance_km", sa.Float, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("weight_kg", sa.Float, nullable=False, server_default="0"),
        sa.Column("labor_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("service_type", sa.String(32), nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("base_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("distance_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("labor_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_price", sa.Float, nullable=False),
        sa.Column("final_price", sa.Float, nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="requested"),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(
            "accepted_at",
            "confirmed_at",
            "started_at",
            "completed_at",
            "paid_at",
            "cancelled_at",
        ),
        sa.Column("cancel_reason", sa.String(500), nullable=True),
        sa.Column("cancellation_fee", sa.Float, nullable=True),
        sa.Column("version_id", sa.Integer, nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # One active order per customer
    op.create_index(
        "uq_orders_one_active_per_customer",
        "orders",
        ["customer_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_ORDER_PREDICATE),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_customer", "orders", ["customer_id"])
    op.create_index("idx_orders_driver", "orders", ["driver_id"])

    # ── order_status_history ─────────────────────────────────────────
    op.create_table(
        "order_status_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer, sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("old_status", sa.String(32), nullable=True),
        sa.Column("new_status", sa.String(32), nullable=False),
        sa.Column("changed_by_user_id", sa.Integer, nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_order_history_order", "order_status_history", ["order_id"])

    # ── trip_ratings ─────────────────────────────────────────────────
    op.create_table(
        "trip_ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer, sa.ForeignKey("orders.id"), unique=True, nullable=False),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_trip_ratings_range"),
    )
    op.create_index("idx_trip_ratings_driver", "trip_ratings", ["driver_id"])

    # ── back office ──────────────────────────────────────────────────
    op.create_table(
        "cancellation_fees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_status", sa.String(32), unique=True, nullable=False),
        sa.Column("fee_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "fee_percentage BETWEEN 0 AND 100", name="ck_cancellation_fees_range"
        ),
    )
    op.create_table(
        "vehicle_type_pricing",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("vehicle_type", sa.String(50), unique=True, nullable=False),
        sa.Column("base_price", sa.Float, nullable=False),
        sa.Column("price_per_km", sa.Float, nullable=False),
        sa.Column("labor_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("vehicle_type_pricing")
    op.drop_table("cancellation_fees")
    op.drop_table("trip_ratings")
    op.drop_table("order_status_history")
    op.drop_table("orders")
    op.drop_table("drivers")
    op.drop_table("users")
