"""Notifications package."""

from finbot.notifications.reminder import (
    REMINDER_MESSAGE,
    TEST_MESSAGE,
    LocalNotifier,
    ReminderScheduler,
)

__all__ = [
    "REMINDER_MESSAGE",
    "TEST_MESSAGE",
    "LocalNotifier",
    "ReminderScheduler",
]
