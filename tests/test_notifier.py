"""
Unit tests for Notifier.
"""

import unittest
from datetime import datetime, timedelta

# Add parent directory to path for imports
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.notifier import Notification, NotificationLevel, Notifier


class TestNotifier(unittest.TestCase):
    """Test cases for Notifier functionality."""

    def test_levels_and_order(self):
        """Levels - Notifications keep their level and arrive newest last"""
        notifier = Notifier()
        notifier.info("queued", upload_id="a.txt")
        notifier.success("done", upload_id="a.txt")
        notifier.error("broken", upload_id="b.txt")

        recent = notifier.recent()
        self.assertEqual([n.level for n in recent],
                         [NotificationLevel.INFO, NotificationLevel.SUCCESS, NotificationLevel.ERROR])
        self.assertEqual(recent[-1].to_dict()["uploadId"], "b.txt")

    def test_history_is_bounded(self):
        """History Limit - Only the newest notifications are kept"""
        notifier = Notifier(max_items=2)
        for i in range(3):
            notifier.info(f"message {i}")
        self.assertEqual([n.message for n in notifier.recent()], ["message 1", "message 2"])

    def test_expired_notifications_hidden(self):
        """Expiry - Expired notifications are only returned on request"""
        notifier = Notifier()
        notifier.error("short lived", duration=0)
        notifier.success("visible")

        self.assertEqual([n.message for n in notifier.recent()], ["visible"])
        self.assertEqual(len(notifier.recent(include_expired=True)), 2)

        notifier.clear()
        self.assertEqual(notifier.recent(include_expired=True), [])

    def test_expiry_time(self):
        """Expiry Time - expires_at is creation time plus duration"""
        created = datetime(2024, 1, 1, 12, 0, 0)
        notification = Notification(NotificationLevel.INFO, "hi", created_at=created, duration=5)
        self.assertEqual(notification.expires_at, created + timedelta(seconds=5))
        self.assertTrue(notification.is_expired(created + timedelta(seconds=5)))
        self.assertFalse(notification.is_expired(created + timedelta(seconds=4)))


if __name__ == '__main__':
    unittest.main(verbosity=2)
