"""
GitHub ↔ Slack Subscriptions Bridge

Lets Slack channels subscribe to GitHub repositories with a slash command and
fans out GitHub App webhook events to every subscribed channel.
"""

__version__ = "0.1.0"
