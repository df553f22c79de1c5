"""Notifications module - Email delivery status for admins."""
