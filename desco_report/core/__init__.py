"""Core configuration, database and infrastructure."""
