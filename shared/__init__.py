"""
elfscope Shared Module
======================

Configuration, logging and console helpers used by the elfscope engine and
command-line interface.
"""

from shared.config import ElfscopeConfig, get_config

__all__ = ["ElfscopeConfig", "get_config"]
