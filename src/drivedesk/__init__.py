"""Drivedesk — Google Drive operations driven by chat commands."""

__version__ = "0.1.0"
