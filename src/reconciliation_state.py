"""
重複防止の状態（プロセス存続中のみ保持）

- voided_checkout_ids: 取消に成功したcheckout ID
- alerted_over_pos: 「超過・ウォレットなし」を通知済みのPO番号

どちらも単調増加で、日付が変わってもクリアしない。
共有ストアに置き換える場合は同じメソッドを実装したオブジェクトを渡す。
"""

from typing import Set


class ReconciliationState:

    def __init__(self):
        self.voided_checkout_ids: Set[str] = set()
        self.alerted_over_pos: Set[str] = set()

    def is_voided(self, checkout_id: str) -> bool:
        return checkout_id in self.voided_checkout_ids

    def mark_voided(self, checkout_id: str):
        self.voided_checkout_ids.add(checkout_id)

    def is_alerted(self, po_number: str) -> bool:
        return po_number in self.alerted_over_pos

    def mark_alerted(self, po_number: str):
        self.alerted_over_pos.add(po_number)
