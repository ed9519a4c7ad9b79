"""Archive Overcast podcast subscriptions and listening history to SQLite."""

__version__ = "0.1.0"
