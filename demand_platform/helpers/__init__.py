from .setup_database import (
    drop_known_tables,
    ensure_tables_exist,
)

__all__ = [
    "ensure_tables_exist",
    "drop_known_tables",
]
