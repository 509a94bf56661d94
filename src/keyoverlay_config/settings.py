"""Preferences for the keyoverlay-config editor itself.

Reads/writes $XDG_CONFIG_HOME/keyoverlay-config/config.yml (or
--settings-file). These are settings of the editor, not of the daemon:
the daemon's JSON config is handled by store.ConfigStore.

Strings can include shell variables like ${HOME} or ${VAR:-default},
which are expanded at load time.

Keys:
  - colorScheme: nord | tokyo-night | catppuccin | dracula
  - tickIntervalSecs: how often the UI drains daemon status events
  - bridgeCapacity: max buffered status events before the producer blocks
  - configFile: daemon config to edit when --config-file is not given
  - browserHost: host used by "Open in Browser"
"""

from __future__ import annotations

import copy
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .logging import get_logger, log_context
from .store import DEFAULT_CONFIG_FILE

_log = get_logger("keyoverlay-config.settings")


DEFAULT_SETTINGS_DIR = os.path.join(
    os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")),
    "keyoverlay-config",
)
DEFAULT_SETTINGS_FILE = os.path.join(DEFAULT_SETTINGS_DIR, "config.yml")

VALID_SCHEMES = ("nord", "tokyo-night", "catppuccin", "dracula")

# Written on first run, used as fallback for missing keys
DEFAULT_SETTINGS: dict[str, Any] = {
    "colorScheme": "nord",
    "tickIntervalSecs": 0.1,
    "bridgeCapacity": 1024,
    "configFile": DEFAULT_CONFIG_FILE,
    "browserHost": "127.0.0.1",
}


def _expand_env(value: str) -> str:
    """Expand shell-style ${VAR} and ${VAR:-default} in a string."""
    def _replacer(m: re.Match) -> str:
        var_expr = m.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name, default)
        return os.environ.get(var_expr, "")
    return re.sub(r"\$\{([^}]+)\}", _replacer, value)


def _expand_config(obj: Any) -> Any:
    """Recursively expand env vars in all string values."""
    if isinstance(obj, str):
        return _expand_env(obj)
    elif isinstance(obj, dict):
        return {k: _expand_config(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_config(v) for v in obj]
    return obj


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep-merge override into base. Override values win."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _closest_match(key: str, valid_keys: set[str], max_distance: int = 3) -> str | None:
    """Suggest the valid key nearest to *key*, or None if nothing is close."""
    best_match = None
    best_dist = max_distance + 1
    key_lower = key.lower()
    for candidate in valid_keys:
        cand_lower = candidate.lower()
        if key_lower == cand_lower:
            return candidate
        if abs(len(key_lower) - len(cand_lower)) > max_distance:
            continue
        dist = _edit_distance(key_lower, cand_lower)
        if dist < best_dist:
            best_dist = dist
            best_match = candidate
    return best_match if best_dist <= max_distance else None


def _edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein edit distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for j in range(1, len(b) + 1):
        curr = [j] + [0] * len(a)
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[i] = min(curr[i - 1] + 1, prev[i] + 1, prev[i - 1] + cost)
        prev = curr
    return prev[len(a)]


@dataclass
class EditorSettings:
    """Parsed and expanded editor preferences."""

    raw: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_SETTINGS))
    """The settings as loaded from YAML (with env vars unexpanded)."""

    expanded: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_SETTINGS))
    """The settings with all env vars expanded."""

    settings_path: str = DEFAULT_SETTINGS_FILE

    validation_warnings: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, settings_path: Optional[str] = None) -> "EditorSettings":
        """Load settings from file, creating it with defaults if not found.

        Never raises: an unreadable or malformed file falls back to the
        defaults with a warning.
        """
        path = settings_path or DEFAULT_SETTINGS_FILE
        raw = copy.deepcopy(DEFAULT_SETTINGS)

        if os.path.isfile(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    user_settings = yaml.safe_load(f)
                if user_settings and isinstance(user_settings, dict):
                    raw = _deep_merge(raw, user_settings)
            except (OSError, yaml.YAMLError) as e:
                print(f"WARNING: Failed to load settings from {path}: {e}", flush=True)
                _log.warning("Failed to load settings: %s", e, extra={"context": log_context(path=path)})
        else:
            try:
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                with open(path, "w", encoding="utf-8") as f:
                    yaml.safe_dump(raw, f, default_flow_style=False, sort_keys=False)
                print(f"  Settings: created {path}", flush=True)
            except OSError as e:
                print(f"WARNING: Failed to write default settings to {path}: {e}", flush=True)
                _log.warning("Failed to write default settings: %s", e, extra={"context": log_context(path=path)})

        settings = cls(raw=raw, expanded=_expand_config(raw), settings_path=path)
        settings._validate()
        return settings

    def _validate(self) -> None:
        """Collect warnings for unknown keys and out-of-range values."""
        warnings: list[str] = []

        known_keys = set(DEFAULT_SETTINGS)
        for key in self.raw:
            if key not in known_keys:
                suggest = _closest_match(key, known_keys)
                hint = f" (did you mean '{suggest}'?)" if suggest else ""
                warnings.append(
                    f"Unknown settings key '{key}'{hint}; "
                    f"expected one of: {', '.join(sorted(known_keys))}"
                )

        scheme = self.expanded.get("colorScheme")
        if scheme not in VALID_SCHEMES:
            warnings.append(
                f"colorScheme '{scheme}' is not valid; "
                f"expected one of: {', '.join(VALID_SCHEMES)}"
            )

        tick = self.expanded.get("tickIntervalSecs")
        if isinstance(tick, bool) or not isinstance(tick, (int, float)) or not 0.01 <= tick <= 5.0:
            warnings.append(f"tickIntervalSecs {tick!r} is out of range (0.01-5.0)")

        capacity = self.expanded.get("bridgeCapacity")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            warnings.append(f"bridgeCapacity {capacity!r} must be a positive integer")

        for key in ("configFile", "browserHost"):
            value = self.expanded.get(key)
            if not isinstance(value, str) or not value:
                warnings.append(f"{key} must be a non-empty string, got {value!r}")

        self.validation_warnings = warnings
        for w in warnings:
            print(f"  Settings WARNING: {w}", flush=True)
            _log.warning(w, extra={"context": log_context(path=self.settings_path)})

    def save(self) -> None:
        """Write the raw settings back to disk."""
        os.makedirs(os.path.dirname(self.settings_path) or ".", exist_ok=True)
        with open(self.settings_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.raw, f, default_flow_style=False, sort_keys=False)
        self.expanded = _expand_config(self.raw)

    # ─── Accessors ──────────────────────────────────────────────────
    # Invalid values fall back to the defaults; _validate() has already
    # warned about them.

    @property
    def color_scheme(self) -> str:
        scheme = self.expanded.get("colorScheme")
        return scheme if scheme in VALID_SCHEMES else DEFAULT_SETTINGS["colorScheme"]

    def set_color_scheme(self, scheme: str) -> None:
        if scheme not in VALID_SCHEMES:
            raise ValueError(f"Unknown color scheme: {scheme}")
        self.raw["colorScheme"] = scheme
        self.expanded["colorScheme"] = scheme

    @property
    def tick_interval(self) -> float:
        tick = self.expanded.get("tickIntervalSecs")
        if isinstance(tick, bool) or not isinstance(tick, (int, float)) or not 0.01 <= tick <= 5.0:
            return DEFAULT_SETTINGS["tickIntervalSecs"]
        return float(tick)

    @property
    def bridge_capacity(self) -> int:
        capacity = self.expanded.get("bridgeCapacity")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            return DEFAULT_SETTINGS["bridgeCapacity"]
        return capacity

    @property
    def config_file(self) -> str:
        value = self.expanded.get("configFile")
        if not isinstance(value, str) or not value:
            return DEFAULT_SETTINGS["configFile"]
        return os.path.expanduser(value)

    @property
    def browser_host(self) -> str:
        value = self.expanded.get("browserHost")
        if not isinstance(value, str) or not value:
            return DEFAULT_SETTINGS["browserHost"]
        return value
