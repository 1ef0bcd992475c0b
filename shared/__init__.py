"""
Shared Module
=============

Configuration, logging, console and result models used by every
component of the toolkit.
"""

from shared.config import ToolConfig, get_config

__all__ = ["ToolConfig", "get_config"]
