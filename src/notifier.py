import requests
from datetime import datetime
from typing import Dict, List

from console import log
from models import ACTION_CANCELLED, Action


class SlackNotifier:
    """Slack Webhook への通知（支払い取消・超過アラート・停止アラート）"""

    def __init__(self, webhook_url: str, timeout: float = 30):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def notify(self, action: Action) -> bool:
        is_cancelled = action.type == ACTION_CANCELLED
        if is_cancelled:
            title = f"🛡️ Pallet Guard: Payment CANCELLED - PO {action.po_number}"
            message = (f"restacks + upstacks ({action.restacks_upstacks}) が pallets in ({action.pallets_in}) "
                       f"を超えたため、支払いを自動で取り消しました。")
        else:
            title = f"⚠️ Pallet Guard: Over Limit Alert - PO {action.po_number}"
            message = (f"restacks + upstacks ({action.restacks_upstacks}) が pallets in ({action.pallets_in}) "
                       f"を超えていますが、取り消せるドライバーウォレット支払いがありません。手動確認が必要です。")

        fields = [
            {"type": "mrkdwn", "text": f"*PO Number:* {action.po_number}"},
            {"type": "mrkdwn", "text": f"*Truck ID:* `{action.truck_id}`"},
            {"type": "mrkdwn", "text": f"*Carrier:* {action.carrier or '-'}"},
            {"type": "mrkdwn", "text": f"*Pallets In:* {action.pallets_in}"},
            {"type": "mrkdwn", "text": f"*Restacks + Upstacks:* {action.restacks_upstacks}"},
            {"type": "mrkdwn", "text": f"*Timestamp:* {action.timestamp}"},
        ]
        if is_cancelled:
            fields.append({"type": "mrkdwn", "text": f"*Checkout ID Voided:* `{action.driver_wallet_checkout_id}`"})

        payload = {
            "text": title,
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": title}},
                {"type": "section", "fields": fields},
                {"type": "section", "text": {"type": "mrkdwn", "text": message}},
            ]
        }
        return self._post(payload)

    def notify_down(self, reason: str) -> bool:
        title = "🚨 Pallet Guard: Scanner DOWN"
        payload = {
            "text": title,
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": title}},
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Reason:* {reason}"},
                        {"type": "mrkdwn", "text": f"*Time:* {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"},
                    ]
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": "スキャナーが停止しました。再認証してから再開してください。"}
                },
            ]
        }
        return self._post(payload)

    def _post(self, payload: Dict) -> bool:
        response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return True


class NullNotifier:
    """Webhook未設定時の通知（ログ出力のみ）"""

    def __init__(self):
        self.sent: List[Dict] = []

    def notify(self, action: Action) -> bool:
        log(f"📝 [通知なし] {action.type}: PO {action.po_number}")
        self.sent.append(action.to_dict())
        return True

    def notify_down(self, reason: str) -> bool:
        log(f"📝 [通知なし] scanner down: {reason}")
        self.sent.append({"type": "down", "reason": reason})
        return True
