# Behavior Notification Engine
"""
Event-driven behavior alerts and response escalation.

- behavior_alert: notify pass for tracked behavior events
- response_check: delayed re-check of awaited responses
- shared: configuration, models, exceptions and AWS tools
"""
