"""HostMetadata ORM model: operator-supplied key/value facts."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrabase.database import Base


class HostMetadata(Base):
    __tablename__ = "host_metadata"

    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("hosts.id", ondelete="CASCADE"), primary_key=True)
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    host: Mapped["Host"] = relationship("Host", back_populates="facts")  # noqa: F821

    def __repr__(self) -> str:
        return f"<HostMetadata {self.key}={self.value!r}>"
