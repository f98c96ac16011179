"""
Reviewer notifications.

- **channel.py**: NotificationChannel bound to a guild or private target.
- **messages.py**: Message templates with zh-CN defaults and overrides.
"""
