"""
SQLAlchemy ORM models.

Tables
------
* ``users``                 -- customers and driver accounts
* ``drivers``               -- vehicle, approval / availability flags, rating
* ``orders``                -- booked transport jobs (never deleted by the engine)
* ``order_status_history``  -- audit trail of state changes and repricing
* ``trip_ratings``          -- one rating per completed order
* ``cancellation_fees``     -- status -> fee percentage policy
* ``vehicle_type_pricing``  -- vehicle type -> cargo tariff

Indexes
-------
* **Partial unique** on ``orders.customer_id`` while the order is active
  (neither ``completed_at`` nor ``cancelled_at`` set): one active order per
  customer, enforced by the database rather than a read-then-write check.
* **Unique** on ``trip_ratings.order_id``: at most one rating per order.
* **Version column** on ``orders``: every ORM update checks and bumps
  ``version_id``, so a writer holding a stale copy fails instead of
  overwriting.
* **B-Tree** on ``status``, ``customer_id``, ``driver_id`` and the driver
  availability flags for the lifecycle look-ups.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)

from .database import Base
from cargo_dispatch.domain.enums import OrderStatus, PaymentMethod, ServiceType

ACTIVE_ORDER_PREDICATE = "completed_at IS NULL AND cancelled_at IS NULL"


def _enum(enum_cls, name: str) -> Enum:
    # Store the lower-case values, not the member names
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone_number = Column(String(32), unique=True, nullable=True)
    user_type = Column(String(20), default="customer", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    vehicle_type = Column(String(50), nullable=True)
    vehicle_plate = Column(String(20), nullable=True)
    vehicle_model = Column(String(80), nullable=True)
    vehicle_year = Column(Integer, nullable=True)

    is_available = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    # No FK: orders.driver_id already points back here
    current_order_id = Column(Integer, nullable=True)

    rating = Column(Float, default=5.0, nullable=False)
    total_trips = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_drivers_available", "is_available", "is_approved"),
        Index("idx_drivers_current_order", "current_order_id"),
    )


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    pickup_address = Column(String(500), nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    destination_address = Column(String(500), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)

    distance_km = Column(Float, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    weight_kg = Column(Float, default=0.0, nullable=False)
    labor_count = Column(Integer, default=0, nullable=False)

    service_type = Column(_enum(ServiceType, "servicetype"), nullable=False)
    vehicle_type = Column(String(50), nullable=True)
    base_price = Column(Float, default=0.0, nullable=False)
    distance_price = Column(Float, default=0.0, nullable=False)
    labor_price = Column(Float, default=0.0, nullable=False)
    total_price = Column(Float, nullable=False)
    final_price = Column(Float, nullable=True)
    payment_method = Column(_enum(PaymentMethod, "paymentmethod"), nullable=False)

    status = Column(
        _enum(OrderStatus, "orderstatus"),
        default=OrderStatus.REQUESTED,
        nullable=False,
    )
    requested_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    cancel_reason = Column(String(500), nullable=True)
    cancellation_fee = Column(Float, nullable=True)

    # Optimistic lock: concurrent writers on one order lose with StaleDataError
    version_id = Column(Integer, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index(
            "uq_orders_one_active_per_customer",
            "customer_id",
            unique=True,
            postgresql_where=text(ACTIVE_ORDER_PREDICATE),
            sqlite_where=text(ACTIVE_ORDER_PREDICATE),
        ),
        Index("idx_orders_status", "status"),
        Index("idx_orders_customer", "customer_id"),
        Index("idx_orders_driver", "driver_id"),
    )


class OrderStatusHistoryModel(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    old_status = Column(String(32), nullable=True)
    new_status = Column(String(32), nullable=False)
    changed_by_user_id = Column(Integer, nullable=True)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_order_history_order", "order_id"),)


class TripRatingModel(Base):
    __tablename__ = "trip_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_trip_ratings_driver", "driver_id"),)


class CancellationFeeModel(Base):
    __tablename__ = "cancellation_fees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_status = Column(String(32), unique=True, nullable=False)
    fee_percentage = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(String(255), nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class VehicleTypePricingModel(Base):
    __tablename__ = "vehicle_type_pricing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_type = Column(String(50), unique=True, nullable=False)
    base_price = Column(Float, nullable=False)
    price_per_km = Column(Float, nullable=False)
    labor_price = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
