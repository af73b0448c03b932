"""
Email notifications (welcome / approved / rejected) sent through the provider's HTTP API.
Every attempt is recorded in email_notifications.
"""
