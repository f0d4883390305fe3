from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None

property_type = sa.Enum(
    "single_family", "condo", "townhome", "multi_family", "manufactured", "land", "other", name="property_type"
)
listing_status = sa.Enum("active", "pending", "sold", "for_sale", "removed", name="listing_status")
collaboration_mode = sa.Enum("independent", "shared", "weighted", name="collaboration_mode")
invitation_status = sa.Enum("pending", "accepted", "expired", "cancelled", name="invitation_status")
interaction_type = sa.Enum("like", "dislike", "skip", "view", name="interaction_type")
resolution_type = sa.Enum(
    "scheduled_viewing", "saved_for_later", "final_pass", "discussion_needed", name="resolution_type"
)


def upgrade():
    op.create_table(
        "neighborhoods",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(50), nullable=False),
        sa.Column("metro_area", sa.String(100)),
        sa.Column("bounds", postgresql.JSONB),
        sa.Column("median_price", sa.Float),
        sa.Column("walk_score", sa.Integer),
        sa.Column("transit_score", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("walk_score BETWEEN 0 AND 100", name="ck_neighborhoods_walk_score"),
        sa.CheckConstraint("transit_score BETWEEN 0 AND 100", name="ck_neighborhoods_transit_score"),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("zpid", sa.String(50), unique=True),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(2), nullable=False),
        sa.Column("zip_code", sa.String(10), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("bedrooms", sa.Integer, nullable=False, server_default="0"),
        sa.Column("bathrooms", sa.Float, nullable=False, server_default="0"),
        sa.Column("square_feet", sa.Integer),
        sa.Column("property_type", property_type),
        sa.Column("images", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("description", sa.Text),
        sa.Column("latitude", sa.Float),
        sa.Column("longitude", sa.Float),
        sa.Column("neighborhood_id", sa.Uuid, sa.ForeignKey("neighborhoods.id", ondelete="SET NULL")),
        sa.Column("amenities", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("year_built", sa.Integer),
        sa.Column("lot_size_sqft", sa.Integer),
        sa.Column("parking_spots", sa.Integer),
        sa.Column("listing_status", listing_status, server_default="active"),
        sa.Column("property_hash", sa.String(64)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("price >= 0", name="ck_properties_price"),
        sa.CheckConstraint("bedrooms BETWEEN 0 AND 20", name="ck_properties_bedrooms"),
        sa.CheckConstraint("bathrooms BETWEEN 0 AND 20", name="ck_properties_bathrooms"),
    )
    op.create_index("idx_properties_active_created", "properties", ["is_active", "created_at"])
    op.create_index("idx_properties_price", "properties", ["price"])
    op.create_index("idx_properties_city_state", "properties", ["city", "state"])
    op.create_index("idx_properties_lat_lng", "properties", ["latitude", "longitude"])
    op.create_index(
        "idx_properties_amenities", "properties", ["amenities"], postgresql_using="gin"
    )

    op.create_table(
        "households",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100)),
        sa.Column("invite_code", sa.String(8), nullable=False, unique=True),
        sa.Column("collaboration_mode", collaboration_mode, server_default="shared"),
        sa.Column("created_by", sa.Uuid),
        sa.Column("user_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255)),
        sa.Column("display_name", sa.String(100)),
        sa.Column("household_id", sa.Uuid, sa.ForeignKey("households.id", ondelete="SET NULL")),
        sa.Column("onboarding_completed", sa.Boolean, server_default=sa.false()),
        sa.Column("preferences", postgresql.JSONB, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_profiles_household_id", "user_profiles", ["household_id"])

    op.create_table(
        "household_invitations",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("household_id", sa.Uuid, sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by", sa.Uuid, nullable=False),
        sa.Column("invited_email", sa.String(255)),
        sa.Column("invited_name", sa.String(100)),
        sa.Column("message", sa.Text),
        sa.Column("status", invitation_status, nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_by", sa.Uuid),
        sa.Column("accepted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_household_invitations_token", "household_invitations", ["token"])
    op.create_index("ix_household_invitations_household_id", "household_invitations", ["household_id"])

    op.create_table(
        "user_property_interactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Uuid, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("household_id", sa.Uuid, sa.ForeignKey("households.id", ondelete="SET NULL")),
        sa.Column("interaction_type", interaction_type, nullable=False),
        sa.Column("score_data", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_interactions_user_type_created",
        "user_property_interactions",
        ["user_id", "interaction_type", "created_at"],
    )
    op.create_index("idx_interactions_household_type", "user_property_interactions", ["household_id", "interaction_type"])
    op.create_index("idx_interactions_property", "user_property_interactions", ["property_id"])

    op.create_table(
        "saved_searches",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("household_id", sa.Uuid, sa.ForeignKey("households.id", ondelete="SET NULL")),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("filters", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("notify", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_saved_searches_user_id", "saved_searches", ["user_id"])
    op.create_index("ix_saved_searches_household_id", "saved_searches", ["household_id"])

    op.create_table(
        "household_property_resolutions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("household_id", sa.Uuid, sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Uuid, sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("resolution_type", resolution_type, nullable=False),
        sa.Column("resolved_by", sa.Uuid, nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("household_id", "property_id", name="uq_household_property_resolution"),
    )


def downgrade():
    op.drop_table("household_property_resolutions")
    op.drop_table("saved_searches")
    op.drop_table("user_property_interactions")
    op.drop_table("household_invitations")
    op.drop_table("user_profiles")
    op.drop_table("households")
    op.drop_table("properties")
    op.drop_table("neighborhoods")
    for enum_type in (
        resolution_type,
        interaction_type,
        invitation_status,
        collaboration_mode,
        listing_status,
        property_type,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
