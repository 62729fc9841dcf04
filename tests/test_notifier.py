import sys
import os
import unittest
from unittest.mock import MagicMock, patch

# srcディレクトリをパスに追加
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from models import Action, ScanResult
from notifier import NullNotifier, SlackNotifier


def _action(type="cancelled", checkout_id="CO123"):
    row = ScanResult(85, "P1", "T1", "ACME", 5, 7, "CANCELLED")
    return Action.now(type, row, checkout_id)


class TestSlackNotifier(unittest.TestCase):

    def setUp(self):
        self.notifier = SlackNotifier("https://hooks.slack.com/services/T/B/X")

    @patch('notifier.requests.post')
    def test_cancelled_message_includes_checkout(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        self.assertTrue(self.notifier.notify(_action()))

        payload = mock_post.call_args.kwargs["json"]
        self.assertIn("CANCELLED - PO P1", payload["text"])
        texts = [f["text"] for f in payload["blocks"][1]["fields"]]
        self.assertIn("*Checkout ID Voided:* `CO123`", texts)

    @patch('notifier.requests.post')
    def test_over_no_wallet_message(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        self.notifier.notify(_action("over-no-wallet", None))

        payload = mock_post.call_args.kwargs["json"]
        self.assertIn("Over Limit Alert - PO P1", payload["text"])
        texts = [f["text"] for f in payload["blocks"][1]["fields"]]
        self.assertFalse(any("Checkout ID" in t for t in texts))

    @patch('notifier.requests.post')
    def test_http_error_raises(self, mock_post):
        response = MagicMock()
        response.raise_for_status.side_effect = Exception("500 Server Error")
        mock_post.return_value = response

        with self.assertRaises(Exception):
            self.notifier.notify_down("reauth failed")

    @patch('notifier.requests.post')
    def test_down_alert(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)

        self.notifier.notify_down("apex の再認証に失敗")

        payload = mock_post.call_args.kwargs["json"]
        self.assertIn("Scanner DOWN", payload["text"])
        self.assertIn("apex の再認証に失敗", payload["blocks"][1]["fields"][0]["text"])


def test_null_notifier_records_messages():
    notifier = NullNotifier()
    notifier.notify(_action())
    notifier.notify_down("stopped")
    assert [m["type"] for m in notifier.sent] == ["cancelled", "down"]
