"""Native macOS installer builds: application bundles and service preference panes."""

__version__ = "0.1.0"
