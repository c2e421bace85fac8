"""create pantry tables

Revision ID: 5c1e9a7d3b20
Revises:
Create Date: 2026-10-19 09:12:31.402117

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d3b20"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_groups_id"), "groups", ["id"], unique=False)
    op.create_index(op.f("ix_groups_name"), "groups", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_group_id"), "users", ["group_id"], unique=False)

    op.create_table(
        "pantry_categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("normalized_name", sa.String(length=100), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "normalized_name", name="uq_pantry_category_group_name"),
    )
    op.create_index(op.f("ix_pantry_categories_id"), "pantry_categories", ["id"], unique=False)
    op.create_index(
        op.f("ix_pantry_categories_normalized_name"),
        "pantry_categories",
        ["normalized_name"],
        unique=False,
    )
    op.create_index(
        op.f("ix_pantry_categories_group_id"), "pantry_categories", ["group_id"], unique=False
    )
    # NULL group_ids never collide in the unique constraint, so predefined
    # names need their own partial index
    op.create_index(
        "uq_pantry_category_predefined_name",
        "pantry_categories",
        ["normalized_name"],
        unique=True,
        postgresql_where=sa.text("group_id IS NULL"),
        sqlite_where=sa.text("group_id IS NULL"),
    )

    op.create_table(
        "pantry_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("normalized_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=50), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("added_by", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["pantry_categories.id"]),
        sa.ForeignKeyConstraint(["added_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "group_id", "normalized_name", "category_id", name="uq_pantry_group_name_category"
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_pantry_items_quantity_non_negative"),
    )
    op.create_index(op.f("ix_pantry_items_id"), "pantry_items", ["id"], unique=False)
    op.create_index(op.f("ix_pantry_items_group_id"), "pantry_items", ["group_id"], unique=False)
    op.create_index(
        op.f("ix_pantry_items_category_id"), "pantry_items", ["category_id"], unique=False
    )
    op.create_index(
        op.f("ix_pantry_items_expiration_date"), "pantry_items", ["expiration_date"], unique=False
    )

    op.create_table(
        "pantry_notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("message", sa.String(length=255), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["pantry_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_pantry_notifications_id"), "pantry_notifications", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_pantry_notifications_group_id"),
        "pantry_notifications",
        ["group_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_pantry_notifications_item_id"), "pantry_notifications", ["item_id"], unique=False
    )
    op.create_index(
        op.f("ix_pantry_notifications_created_at"),
        "pantry_notifications",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "pantry_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pantry_history_id"), "pantry_history", ["id"], unique=False)
    op.create_index(
        op.f("ix_pantry_history_group_id"), "pantry_history", ["group_id"], unique=False
    )
    op.create_index(op.f("ix_pantry_history_item_id"), "pantry_history", ["item_id"], unique=False)
    op.create_index(
        op.f("ix_pantry_history_created_at"), "pantry_history", ["created_at"], unique=False
    )


def downgrade() -> None:
    op.drop_table("pantry_history")
    op.drop_table("pantry_notifications")
    op.drop_table("pantry_items")
    op.drop_index("uq_pantry_category_predefined_name", table_name="pantry_categories")
    op.drop_table("pantry_categories")
    op.drop_table("users")
    op.drop_table("groups")
