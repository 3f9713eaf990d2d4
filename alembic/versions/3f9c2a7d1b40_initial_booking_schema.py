"""initial_booking_schema

Revision ID: 3f9c2a7d1b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def _price_snapshot() -> list[sa.Column]:
    return [
        sa.Column("seasonal_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("base_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("gross_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("applied_discounts", sa.JSON(), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("coupon_code", sa.String(50), nullable=True),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(255), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # Step 1: Catalog
    op.create_table(
        "tours",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("destination_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tour_type", sa.String(50), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("number_of_days", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_participants", sa.Integer(), nullable=True),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("discount_active", sa.Boolean(), nullable=False),
        sa.Column("discount_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tours_destination_id", "tours", ["destination_id"])

    op.create_table(
        "tour_schedules",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tour_id", sa.UUID(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("current_bookings", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("current_bookings >= 0", name="ck_tour_schedules_current_bookings_non_negative"),
        sa.CheckConstraint("current_bookings <= available_seats", name="ck_tour_schedules_not_overbooked"),
        sa.ForeignKeyConstraint(["tour_id"], ["tours.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tour_schedules_tour_id", "tour_schedules", ["tour_id"])

    op.create_table(
        "tour_guide_pricing",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tour_id", sa.UUID(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("price_per_day", sa.Numeric(12, 2), nullable=True),
        sa.Column("price_per_person", sa.Numeric(12, 2), nullable=True),
        sa.Column("price_per_group", sa.Numeric(12, 2), nullable=True),
        sa.Column("minimum_charge", sa.Numeric(12, 2), nullable=True),
        sa.Column("maximum_group_size", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tour_id"], ["tours.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tour_guide_pricing_tour_id", "tour_guide_pricing", ["tour_id"])

    op.create_table(
        "vehicles",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("brand", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=False),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("price_per_day", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_quantity", sa.Integer(), nullable=False),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False),
        sa.Column("min_units_per_booking", sa.Integer(), nullable=True),
        sa.Column("max_units_per_booking", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Step 2: Pricing rules
    op.create_table(
        "seasonal_rules",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("resource_kind", sa.String(20), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("regions", sa.JSON(), nullable=False),
        sa.Column("price_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "driver_rates",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("trip_type", sa.String(50), nullable=True),
        sa.Column("rate_per_day", sa.Numeric(12, 2), nullable=True),
        sa.Column("rate_per_person", sa.Numeric(12, 2), nullable=True),
        sa.Column("rate_per_group", sa.Numeric(12, 2), nullable=True),
        sa.Column("terrain_multiplier", sa.Numeric(6, 3), nullable=True),
        sa.Column("minimum_charge", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_rates_trip_type", "driver_rates", ["trip_type"])

    op.create_table(
        "coupons",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("resource_kind", sa.String(20), nullable=True),
        sa.Column("value_type", sa.String(20), nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_discount", sa.Numeric(12, 2), nullable=True),
        sa.Column("min_booking_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("min_days", sa.Integer(), nullable=True),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        sa.Column("per_user_limit", sa.Integer(), nullable=True),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("valid_from", sa.DateTime(), nullable=True),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)

    op.create_table(
        "long_term_discounts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("resource_kind", sa.String(20), nullable=True),
        sa.Column("min_days", sa.Integer(), nullable=False),
        sa.Column("value_type", sa.String(20), nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Step 3: Bookings
    op.create_table(
        "tour_bookings",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("booking_code", sa.String(40), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("tour_id", sa.UUID(), nullable=False),
        sa.Column("schedule_id", sa.UUID(), nullable=False),
        sa.Column("destination_id", sa.UUID(), nullable=False),
        sa.Column("number_of_participants", sa.Integer(), nullable=False),
        sa.Column("price_per_participant_at_booking", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_per_participant", sa.Numeric(12, 2), nullable=False),
        sa.Column("needs_guide", sa.Boolean(), nullable=False),
        sa.Column("number_of_guides", sa.Integer(), nullable=True),
        sa.Column("guide_pricing_type", sa.String(20), nullable=True),
        sa.Column("guide_rate_at_booking", sa.Numeric(12, 2), nullable=True),
        sa.Column("guide_minimum_charge", sa.Numeric(12, 2), nullable=True),
        sa.Column("guide_total_price", sa.Numeric(12, 2), nullable=True),
        *_price_snapshot(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tour_id"], ["tours.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["schedule_id"], ["tour_schedules.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tour_bookings_booking_code", "tour_bookings", ["booking_code"], unique=True)
    op.create_index("ix_tour_bookings_user_id", "tour_bookings", ["user_id"])
    op.create_index("ix_tour_bookings_status", "tour_bookings", ["status"])
    op.create_index("ix_tour_bookings_tour_id", "tour_bookings", ["tour_id"])
    op.create_index("ix_tour_bookings_schedule_id", "tour_bookings", ["schedule_id"])
    op.create_index("ix_tour_bookings_destination_id", "tour_bookings", ["destination_id"])
    op.create_index("ix_tour_bookings_coupon_code", "tour_bookings", ["coupon_code"])
    op.create_index("ix_tour_bookings_schedule_status", "tour_bookings", ["schedule_id", "status"])

    op.create_table(
        "vehicle_bookings",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("booking_code", sa.String(40), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("vehicle_id", sa.UUID(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("number_of_vehicles", sa.Integer(), nullable=False),
        sa.Column("trip_type", sa.String(50), nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("dropoff_location", sa.String(255), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("price_per_day_at_booking", sa.Numeric(12, 2), nullable=False),
        sa.Column("needs_driver", sa.Boolean(), nullable=False),
        sa.Column("number_of_drivers", sa.Integer(), nullable=False),
        sa.Column("driver_pricing_type", sa.String(20), nullable=True),
        sa.Column("driver_rate_at_booking", sa.Numeric(12, 2), nullable=True),
        sa.Column("driver_minimum_charge", sa.Numeric(12, 2), nullable=True),
        sa.Column("terrain_charge", sa.Numeric(12, 2), nullable=False),
        sa.Column("driver_total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("advance_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("remaining_amount", sa.Numeric(12, 2), nullable=False),
        *_price_snapshot(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vehicle_bookings_booking_code", "vehicle_bookings", ["booking_code"], unique=True)
    op.create_index("ix_vehicle_bookings_user_id", "vehicle_bookings", ["user_id"])
    op.create_index("ix_vehicle_bookings_status", "vehicle_bookings", ["status"])
    op.create_index("ix_vehicle_bookings_vehicle_id", "vehicle_bookings", ["vehicle_id"])
    op.create_index("ix_vehicle_bookings_coupon_code", "vehicle_bookings", ["coupon_code"])
    op.create_index(
        "ix_vehicle_bookings_vehicle_interval", "vehicle_bookings", ["vehicle_id", "start_date", "end_date"]
    )


def downgrade() -> None:
    op.drop_table("vehicle_bookings")
    op.drop_table("tour_bookings")
    op.drop_table("long_term_discounts")
    op.drop_table("coupons")
    op.drop_table("driver_rates")
    op.drop_table("seasonal_rules")
    op.drop_table("vehicles")
    op.drop_table("tour_guide_pricing")
    op.drop_table("tour_schedules")
    op.drop_table("tours")
