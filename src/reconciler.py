"""
PO照合エンジン

POごとに Restack+Upstack 数とパレット入庫数を比較し、超過していれば
トラックに紐づくドライバーウォレット支払いを取り消す。

結合キー:
- 付帯作業 → PO番号 (pO_Number)
- トラック集計 → トラックID (PO.truckId = truckSummary.truckID)
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from console import log
from errors import AuthExpired
from models import (
    ACTION_CANCELLED, ACTION_OVER_NO_WALLET, STATUS_CANCELLED, STATUS_OK, STATUS_OVER,
    Action, AncillaryItem, PurchaseOrder, ScanResult, TruckSummary,
)
from reconciliation_state import ReconciliationState


@dataclass
class ReconcileResult:
    po_data: List[ScanResult] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)

    def extend(self, other: "ReconcileResult"):
        self.po_data.extend(other.po_data)
        self.actions.extend(other.actions)

    def count(self, status: str) -> int:
        return len([p for p in self.po_data if p.status == status])


def aggregate_restacks(ancillary: List[AncillaryItem]) -> Dict[str, float]:
    """PO番号ごとに Restack/Upstack の数量を合計"""
    restacks_by_po: Dict[str, float] = {}
    for item in ancillary:
        if item.po_number and item.is_restack:
            restacks_by_po[item.po_number] = restacks_by_po.get(item.po_number, 0) + item.quantity
    return restacks_by_po


def carriers_by_po(ancillary: List[AncillaryItem]) -> Dict[str, str]:
    # 同じPOに複数あれば後勝ち
    return {item.po_number: item.carrier_name for item in ancillary if item.po_number and item.carrier_name}


def trucks_by_id(trucks: List[TruckSummary]) -> Dict[str, TruckSummary]:
    return {t.truck_id: t for t in trucks if t.truck_id}


def is_dry_run() -> bool:
    return os.getenv("DRY_RUN", "false").lower() == "true"


def reconcile(sub_dept: int, pos: List[PurchaseOrder], ancillary: List[AncillaryItem],
              trucks: List[TruckSummary], client, load_entry_token: str,
              state: ReconciliationState) -> ReconcileResult:
    """1サブ部門分のPOを照合し、必要なら支払いを取り消す

    AuthExpired は握りつぶさずに呼び出し元へ送出する（重複防止状態は変更しない）。
    それ以外の取消失敗はPO単位でログに残し、残りのPOの処理を続ける。
    """
    restacks_by_po = aggregate_restacks(ancillary)
    carrier_by_po = carriers_by_po(ancillary)
    truck_by_id = trucks_by_id(trucks)
    dry_run = is_dry_run()

    result = ReconcileResult()

    for po in pos:
        truck = truck_by_id.get(po.truck_id)
        carrier = carrier_by_po.get(po.po_number) or (truck.carrier_name if truck else "") or ""
        row = ScanResult(
            sub_dept=sub_dept,
            po_number=po.po_number,
            truck_id=po.truck_id,
            carrier=carrier,
            pallets_in=po.pallets_in,
            restacks_upstacks=restacks_by_po.get(po.po_number, 0),
            status=STATUS_OK,
        )

        # 同数は超過ではない
        if row.restacks_upstacks > row.pallets_in:
            row.status = STATUS_OVER
            checkout_id = truck.driver_wallet_checkout_id if truck else None

            if checkout_id:
                if state.is_voided(checkout_id):
                    row.status = STATUS_CANCELLED
                elif dry_run:
                    log(f"  [DRY_RUN] PO {po.po_number} の取消をスキップします (CheckoutID {checkout_id})")
                else:
                    try:
                        action = _void(row, checkout_id, client, load_entry_token, state)
                    except AuthExpired as e:
                        e.pending_actions[:0] = result.actions
                        raise
                    if action:
                        result.actions.append(action)
            elif not state.is_alerted(po.po_number):
                state.mark_alerted(po.po_number)
                log(f"⚠️ PO {po.po_number}: restacks ({row.restacks_upstacks}) > pallets in ({row.pallets_in}) ウォレット支払いなし")
                result.actions.append(Action.now(ACTION_OVER_NO_WALLET, row))

        result.po_data.append(row)

    log(f"[SD{sub_dept}] 照合完了: {len(result.po_data)} POs, {result.count(STATUS_OVER)} over, {len(result.actions)} actions")
    return result


def _void(row: ScanResult, checkout_id: str, client, load_entry_token: str,
          state: ReconciliationState) -> Optional[Action]:
    try:
        client.void_driver_wallet_checkout(checkout_id, load_entry_token)
    except AuthExpired:
        raise
    except Exception as e:
        # 次のサイクルで再試行される（dedupに入れない）
        log(f"❌ CheckoutID {checkout_id} (PO {row.po_number}) の取消に失敗: {e}")
        return None

    state.mark_voided(checkout_id)
    row.status = STATUS_CANCELLED
    log(f"🚫 CANCELLED wallet payment for PO {row.po_number} | Truck {row.truck_id[:8]}... | CheckoutID {checkout_id}")
    return Action.now(ACTION_CANCELLED, row, checkout_id)
