"""termxfer - terminal dual-pane file transfer client."""

__version__ = "0.3.0"
