"""Host ORM model — one row per inventoried machine."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrabase.database import Base


class Host(Base):
    __tablename__ = "hosts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Stored as entered; uniqueness is enforced on lower(hostname) below
    hostname: Mapped[str] = mapped_column(String(253), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    addresses: Mapped[list["HostAddress"]] = relationship(  # noqa: F821
        "HostAddress", back_populates="host", cascade="all, delete-orphan",
        lazy="selectin", order_by="HostAddress.position",
    )
    tags: Mapped[list["HostTag"]] = relationship(  # noqa: F821
        "HostTag", back_populates="host", cascade="all, delete-orphan", lazy="selectin",
    )
    # "metadata" is reserved on declarative classes
    facts: Mapped[list["HostMetadata"]] = relationship(  # noqa: F821
        "HostMetadata", back_populates="host", cascade="all, delete-orphan", lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Host {self.hostname} owner={self.owner}>"


# Case-insensitive uniqueness; lookups go through lower(hostname) too
Index("uq_hosts_hostname_lower", func.lower(Host.hostname), unique=True)
