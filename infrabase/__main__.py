"""Allow ``python -m infrabase``."""

from infrabase.cli import run

run()
