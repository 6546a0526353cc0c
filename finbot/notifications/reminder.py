"""
Reminder Notifications

Fires a "record your spending" reminder at each configured time of day.

The caller drives the scheduler by calling tick() (for example once a
minute). A reminder fires at most once per (date, HH:MM) slot. Both
delivery channels are best-effort: a local notifier callback and, when
the remote endpoint and chat id are configured, a remote NOTIFY.
"""

from datetime import datetime
from typing import Callable, Optional

from finbot.ledger import Reconciler
from finbot.logger import get_logger
from finbot.models.transaction import UserSettings


logger = get_logger(__name__)

LocalNotifier = Callable[[str, str], None]

REMINDER_TITLE = "FinBot nhắc nhở"
REMINDER_MESSAGE = "⏰ Đến giờ ghi chi tiêu rồi! Từ lần trước bạn có khoản nào mới không?"
TEST_MESSAGE = "🔔 Đây là thông báo thử từ FinBot."


class ReminderScheduler:
    """Time-of-day reminders with per-slot deduplication."""
    
    def __init__(
        self,
        reconciler: Reconciler,
        local_notifier: Optional[LocalNotifier] = None,
    ):
        """
        Args:
            reconciler: Used for the remote NOTIFY call
            local_notifier: Called as local_notifier(title, message)
        """
        self._reconciler = reconciler
        self._local_notifier = local_notifier
        self._last_fired: Optional[tuple[str, str]] = None
    
    @property
    def last_fired(self) -> Optional[tuple[str, str]]:
        return self._last_fired
    
    def _notify_locally(self, message: str) -> bool:
        if self._local_notifier is None:
            return False
        try:
            self._local_notifier(REMINDER_TITLE, message)
            return True
        except Exception as e:
            logger.error("local_notification_failed", error=str(e))
            return False
    
    async def _deliver(self, settings: UserSettings, message: str) -> bool:
        local = self._notify_locally(message)
        remote = await self._reconciler.notify(settings, message)
        return local or remote
    
    async def tick(self, now: datetime, settings: UserSettings) -> bool:
        """
        Fire the reminder if `now` falls on a configured time slot.
        
        Returns:
            True if a reminder was fired on this tick
        """
        if not settings.notification_enabled:
            return False
        
        slot = now.strftime("%H:%M")
        if slot not in settings.notification_times:
            return False
        
        key = (now.date().isoformat(), slot)
        if key == self._last_fired:
            return False
        self._last_fired = key
        
        delivered = await self._deliver(settings, REMINDER_MESSAGE)
        logger.info("reminder_fired", date=key[0], time=slot, delivered=delivered)
        return True
    
    async def send_test_notification(self, settings: UserSettings) -> bool:
        """Send one notification right away through every configured channel."""
        delivered = await self._deliver(settings, TEST_MESSAGE)
        logger.info("test_notification_sent", delivered=delivered)
        return delivered
