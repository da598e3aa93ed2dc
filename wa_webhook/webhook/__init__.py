"""Webhook verification, interpretation, and event dispatch."""
