# chatops/interfaces/slack/__init__.py
"""Slack integration package for the chatops bot.

This package provides the Slack bot implementation using AsyncApp
and AsyncSocketModeHandler from slack-bolt, and the dispatch pipeline
(permissions, forms, progress reactions, replies) it drives.

Entry point: python -m chatops.interfaces.slack.bot
"""
