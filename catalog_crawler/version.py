"""Release version of catalog_crawler and the config.json schema it reads."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

# Also sent in the default User-Agent.
__version__ = "0.1.0"

# Bump together with a step in config.migrate_config.
CONFIG_SCHEMA_VERSION = 1
