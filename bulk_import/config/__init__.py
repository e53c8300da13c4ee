"""Configuration module for the bulk user import service."""
from .settings import AppConfig, build_identity_client, load_settings

__all__ = ["AppConfig", "build_identity_client", "load_settings"]
