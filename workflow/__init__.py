"""Radiology workflow application.

Models, the status transition engine and its synchronisation rules,
notifications, the WebSocket consumer and the REST API used by the
dashboards and the mobile portal.
"""
