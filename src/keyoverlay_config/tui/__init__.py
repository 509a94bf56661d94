"""keyoverlay-config TUI package.

Modules:
    themes - Color schemes (Nord, Tokyo Night, Catppuccin, Dracula) and CSS generation
    widgets - CommitInput, KeyRow, _safe_action decorator
    app    - ConfiguratorApp (main Textual App)
"""

from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, get_scheme, build_css
from .widgets import CommitInput, KeyRow, _safe_action
from .app import ConfiguratorApp

__all__ = [
    "COLOR_SCHEMES",
    "DEFAULT_SCHEME",
    "get_scheme",
    "build_css",
    "CommitInput",
    "KeyRow",
    "_safe_action",
    "ConfiguratorApp",
]
