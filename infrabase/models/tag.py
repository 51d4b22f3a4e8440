"""HostTag ORM model."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrabase.database import Base


class HostTag(Base):
    __tablename__ = "host_tags"

    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("hosts.id", ondelete="CASCADE"), primary_key=True)
    name: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    # Relationships
    host: Mapped["Host"] = relationship("Host", back_populates="tags")  # noqa: F821

    def __repr__(self) -> str:
        return f"<HostTag {self.name}>"
