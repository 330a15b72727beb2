"""Configuration management for sshchat.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides, including the unprefixed
``PORT`` variable used by container deployments.
"""

from sshchat.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
