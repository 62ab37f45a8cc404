from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


# ---------------------------------------------------------------------------
# Follow: directed edge "follower follows followee"
# ---------------------------------------------------------------------------
class Follow(Base):
    __tablename__ = "follows"

    __table_args__ = (
        # Duplicate follows are rejected by the database, not by a
        # check-then-insert in the service layer.
        UniqueConstraint(
            "usuario_principal_username",
            "usuario_seguidor_username",
            name="uq_follows_principal_seguidor",
        ),
        CheckConstraint(
            "usuario_principal_username <> usuario_seguidor_username",
            name="ck_follows_no_self_follow",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Usernames are owned by the Users service (separate database), so there
    # is no ForeignKey here; existence is checked over HTTP before insert.
    followee_username: Mapped[str] = mapped_column(
        "usuario_principal_username", String(100), nullable=False
    )
    follower_username: Mapped[str] = mapped_column(
        "usuario_seguidor_username", String(100), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        "fecha_creacion", DateTime(timezone=True), server_default=func.now(), nullable=False
    )
