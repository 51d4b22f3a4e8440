"""NetworkLink ORM model."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from infrabase.database import Base


class NetworkLink(Base):
    __tablename__ = "network_links"

    # A machine on `network` can reach addresses on `other_network`
    network: Mapped[str] = mapped_column(String(64), primary_key=True)
    other_network: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Lower is preferred
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<NetworkLink {self.network}->{self.other_network} priority={self.priority}>"
