"""Slack chatops bot running registered commands from chat messages."""

__version__ = "0.1.0"
