"""Configuration module for the ConfigMgr Web Service."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
