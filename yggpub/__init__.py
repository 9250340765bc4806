"""Status dashboard for a Yggdrasil mesh node."""

__version__ = "0.1.0"
