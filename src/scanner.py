"""
スキャン処理（1サイクル分）

サブ部門ごとに以下を順に呼び出して照合エンジンへ渡す:
1. GET subdept/{sub}/pos/{date}/{date}            (Apex)
2. GET subdept/{sub}/ancillaryItems/{date}/{date} (Apex)
3. GET truckSummaries/{sub}/{YYYY-MM-DD}/         (Load Entry)
"""

from datetime import datetime
from typing import List, Optional

from capstone_client import CapstoneClient
from console import log
from errors import AuthExpired
from models import AncillaryItem, PurchaseOrder, TruckSummary
from operational_clock import DAY_BOUNDARY_HOUR, apex_date, load_entry_date
from reconciler import ReconcileResult, reconcile
from reconciliation_state import ReconciliationState


class Scanner:

    def __init__(self, client: CapstoneClient, state: Optional[ReconciliationState] = None,
                 day_boundary_hour: int = DAY_BOUNDARY_HOUR, clock=datetime.now):
        self.client = client
        self.state = state or ReconciliationState()
        self.day_boundary_hour = day_boundary_hour
        self.clock = clock

    def run_cycle(self, sub_depts: List[int], apex_token: str, load_entry_token: str) -> ReconcileResult:
        """全サブ部門を順にスキャンして結果をまとめる"""
        combined = ReconcileResult()
        for sub_dept in sub_depts:
            try:
                combined.extend(self.scan_one(sub_dept, apex_token, load_entry_token))
            except AuthExpired as e:
                # 取消済みの分は通知できるように例外に載せて送出する
                e.pending_actions[:0] = combined.actions
                raise
        return combined

    def scan_one(self, sub_dept: int, apex_token: str, load_entry_token: str) -> ReconcileResult:
        now = self.clock()
        date_apex = apex_date(now, self.day_boundary_hour)
        date_le = load_entry_date(now, self.day_boundary_hour)

        log(f"[SD{sub_dept}] POを取得中... ({date_apex})")
        pos = [PurchaseOrder.from_api(p) for p in self.client.get_pos(sub_dept, date_apex, apex_token)]

        log(f"[SD{sub_dept}] 付帯作業を取得中...")
        ancillary = [AncillaryItem.from_api(a) for a in
                     self.client.get_ancillary_items(sub_dept, date_apex, apex_token)]

        log(f"[SD{sub_dept}] Load Entry トラック集計を取得中...")
        trucks: List[TruckSummary] = []
        try:
            trucks = [TruckSummary.from_api(t) for t in
                      self.client.get_truck_summaries(sub_dept, date_le, load_entry_token)]
        except AuthExpired:
            raise
        except Exception as e:
            # トラック集計なしでも超過検知は続ける
            log(f"⚠️ Load Entry truckSummaries の取得に失敗: {e}")

        return reconcile(sub_dept, pos, ancillary, trucks, self.client, load_entry_token, self.state)
