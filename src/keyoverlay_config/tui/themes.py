"""Color schemes and CSS generation for the keyoverlay-config TUI.

Supports Nord (default), Tokyo Night, Catppuccin, and Dracula themes.
"""

from __future__ import annotations


# ─── Color Schemes ────────────────────────────────────────────────────────

COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "nord": {
        "bg": "#2e3440",
        "bg_alt": "#3b4252",
        "fg": "#eceff4",
        "fg_dim": "#616e88",
        "accent": "#88c0d0",
        "success": "#a3be8c",
        "error": "#bf616a",
        "border": "#4c566a",
    },
    "tokyo-night": {
        "bg": "#1a1b26",
        "bg_alt": "#24283b",
        "fg": "#a9b1d6",
        "fg_dim": "#565f89",
        "accent": "#7aa2f7",
        "success": "#9ece6a",
        "error": "#f7768e",
        "border": "#414868",
    },
    "catppuccin": {
        "bg": "#1e1e2e",
        "bg_alt": "#313244",
        "fg": "#cdd6f4",
        "fg_dim": "#585b70",
        "accent": "#89b4fa",
        "success": "#a6e3a1",
        "error": "#f38ba8",
        "border": "#585b70",
    },
    "dracula": {
        "bg": "#282a36",
        "bg_alt": "#44475a",
        "fg": "#f8f8f2",
        "fg_dim": "#6272a4",
        "accent": "#8be9fd",
        "success": "#50fa7b",
        "error": "#ff5555",
        "border": "#6272a4",
    },
}

DEFAULT_SCHEME = "nord"


def get_scheme(name: str = DEFAULT_SCHEME) -> dict[str, str]:
    """Get a color scheme by name, with fallback to default."""
    return COLOR_SCHEMES.get(name, COLOR_SCHEMES[DEFAULT_SCHEME])


def next_scheme(name: str) -> str:
    """The scheme after *name*, wrapping around."""
    names = list(COLOR_SCHEMES)
    if name not in names:
        return DEFAULT_SCHEME
    return names[(names.index(name) + 1) % len(names)]


def build_css(scheme_name: str = DEFAULT_SCHEME) -> str:
    """Build the Textual CSS using a named color scheme."""
    s = get_scheme(scheme_name)
    return f"""
    Screen {{
        background: {s['bg']};
        color: {s['fg']};
    }}

    #columns {{
        height: 1fr;
    }}

    #left, #right {{
        width: 1fr;
        height: 1fr;
        padding: 0 1;
    }}

    #title {{
        color: {s['accent']};
        text-style: bold;
        width: 1fr;
        border-bottom: solid {s['border']};
    }}

    .field-row {{
        height: auto;
    }}

    .field-row Label {{
        width: 14;
        padding: 1 0;
        color: {s['fg_dim']};
    }}

    .port-input {{
        width: 12;
    }}

    .key-input {{
        width: 16;
    }}

    .remove-key {{
        min-width: 5;
        width: 5;
    }}

    #key-list {{
        height: auto;
    }}

    #add-key {{
        min-width: 5;
        width: 5;
        margin-bottom: 1;
    }}

    #left-scroll {{
        height: 1fr;
    }}

    #save {{
        width: 1fr;
    }}

    #client-status {{
        color: {s['fg_dim']};
        padding: 0 1;
    }}

    #client-status.disconnected {{
        color: {s['error']};
    }}

    #right-scroll {{
        height: 1fr;
    }}

    .json-view {{
        background: {s['bg_alt']};
        padding: 0 1;
        width: 1fr;
    }}

    #restart-warning {{
        color: {s['error']};
        text-style: bold;
        display: none;
    }}

    #restart-warning.visible {{
        display: block;
    }}

    #bottom-buttons {{
        height: auto;
        align-horizontal: right;
    }}
    """
