"""CLI commands for Namesake."""

from . import analyze, config_cmd, providers

__all__ = ["analyze", "config_cmd", "providers"]
