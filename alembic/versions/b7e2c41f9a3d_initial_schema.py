"""initial schema with default plan and messages

Revision ID: b7e2c41f9a3d
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b7e2c41f9a3d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

DEFAULT_MESSAGES = [
    "Acabou de sair uma nova fornada! Venha conferir!",
    "Pão quentinho esperando por você! 🥖",
    "Sentiu o cheirinho? Fornada nova na área!",
    "Não perca! Produtos fresquinhos acabaram de sair do forno.",
    "Ei, saiu uma fornada! Corra antes que esfrie 🥐🔥",
    "Fornada saindo agora, vem buscar o seu! 🚶‍♀️🥯",
    "Pausa para o cheirinho: nova fornada disponível 👃💛",
    "O padeiro mandou avisar: saiu mais pão! 👨‍🍳🔥",
    "Tem pãozinho quentinho na vitrine, corre antes que acabe 😍",
    "Hora do lanche: fornada saindo neste momento 🍩😋",
    "Traga fome, temos pão quentinho saindo do forno 😄🍞",
    "Pães fresquinhos chegaram 🥖🌿",
    "Pequena felicidade do dia: fornada pronta 🙌🍞",
    "Não esquece: temos seu pão preferido quentinho agora 🔔🥖",
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="cliente"),
        sa.Column("current_plan", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "establishments",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("fornadas", sa.JSON(), nullable=True),
        sa.Column(
            "owner_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        *_timestamps(),
    )

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
        sa.Column("endpoint", sa.String(500), nullable=False, unique=True),
        sa.Column("p256dh_key", sa.String(200), nullable=False),
        sa.Column("auth_key", sa.String(100), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "establishment_subscriptions",
        sa.Column(
            "subscription_id",
            sa.Integer(),
            sa.ForeignKey("push_subscriptions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "establishment_id",
            sa.Integer(),
            sa.ForeignKey("establishments.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    messages = op.create_table(
        "notification_messages",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("message", sa.Text(), nullable=False),
    )

    plans = op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("benefits", sa.JSON(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "establishment_id",
            sa.Integer(),
            sa.ForeignKey("establishments.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("fornada_id", sa.String(100), nullable=True),
        sa.Column("reservation_time", sa.String(10), nullable=False),
        *_timestamps(),
    )

    op.bulk_insert(
        plans,
        [
            {
                "id": 1,
                "name": "Pão Quentinho Pro",
                "description": (
                    "Reservas ilimitadas e muito mais para você nunca perder uma fornada."
                ),
                "benefits": ["Número ilimitado de reservas por mês"],
                "price": 4.99,
                "is_active": True,
            }
        ],
    )
    op.bulk_insert(messages, [{"message": message} for message in DEFAULT_MESSAGES])


def downgrade() -> None:
    op.drop_table("reservations")
    op.drop_table("plans")
    op.drop_table("notification_messages")
    op.drop_table("establishment_subscriptions")
    op.drop_table("push_subscriptions")
    op.drop_table("establishments")
    op.drop_table("users")
