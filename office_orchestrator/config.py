"""
Application configuration for the office orchestrator.

Loads config/config.yaml (or CONFIG_PATH) once at import time; everything
else reads the shared ``config`` instance.
"""

from .config_loader import load_app_config

config = load_app_config()
