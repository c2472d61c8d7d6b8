"""Command handlers for bulknote."""

from .auth import cmd_auth_set, cmd_auth_info
from .cache import cache_info, cache_clear
from .config_cmd import cmd_config_show, cmd_config_set
from .notes import cmd_list
from .export import cmd_export
from .save import cmd_save

__all__ = [
    "cmd_auth_set",
    "cmd_auth_info",
    "cache_info",
    "cache_clear",
    "cmd_config_show",
    "cmd_config_set",
    "cmd_list",
    "cmd_export",
    "cmd_save",
]
