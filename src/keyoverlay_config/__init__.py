"""keyoverlay-config: configuration editor for the keyoverlay daemon."""

__version__ = "0.1.0"
