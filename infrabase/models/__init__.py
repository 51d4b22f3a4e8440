"""ORM Models package — import all models so Alembic can discover them."""

from infrabase.models.host import Host                      # noqa: F401
from infrabase.models.address import HostAddress            # noqa: F401
from infrabase.models.tag import HostTag                    # noqa: F401
from infrabase.models.metadata import HostMetadata          # noqa: F401
from infrabase.models.network import NetworkLink            # noqa: F401

__all__ = ["Host", "HostAddress", "HostTag", "HostMetadata", "NetworkLink"]
