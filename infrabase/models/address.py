"""HostAddress ORM model."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from infrabase.database import Base


class HostAddress(Base):
    __tablename__ = "host_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True)

    # Order within the host's address list
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    address: Mapped[str] = mapped_column(String(45), nullable=False, index=True)
    network: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ssh_port: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    host: Mapped["Host"] = relationship("Host", back_populates="addresses")  # noqa: F821

    def __repr__(self) -> str:
        return f"<HostAddress {self.address} network={self.network} ssh_port={self.ssh_port}>"
