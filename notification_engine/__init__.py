"""Notification engine package initializer.

Resolves recipients for workflow events, dispatches them over the configured
delivery channels and keeps an auditable record of every attempt.
"""
