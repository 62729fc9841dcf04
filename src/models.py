from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, Optional

RESTACK_FEE_NAMES = {"restack", "upstack"}

STATUS_OK = "OK"
STATUS_OVER = "OVER"
STATUS_CANCELLED = "CANCELLED"

ACTION_CANCELLED = "cancelled"
ACTION_OVER_NO_WALLET = "over-no-wallet"


def _count(value) -> float:
    """数値として解釈できない値は0として扱う"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return 0
    return parsed if parsed == parsed else 0  # NaN


@dataclass
class PurchaseOrder:
    po_number: str
    truck_id: str
    pallet_white_in: float = 0
    pallet_chep_in: float = 0
    pallet_peco_in: float = 0
    pallet_igps_in: float = 0

    @property
    def pallets_in(self) -> float:
        return self.pallet_white_in + self.pallet_chep_in + self.pallet_peco_in + self.pallet_igps_in

    @classmethod
    def from_api(cls, data: Dict) -> "PurchaseOrder":
        return cls(
            po_number=data.get("poNumber") or "",
            truck_id=data.get("truckId") or "",
            pallet_white_in=_count(data.get("palletWhiteInCount")),
            pallet_chep_in=_count(data.get("palletChepInCount")),
            pallet_peco_in=_count(data.get("palletPecoInCount")),
            pallet_igps_in=_count(data.get("palletIgpsInCount")),
        )


@dataclass
class AncillaryItem:
    po_number: str
    additional_fee_name: str
    quantity: float
    carrier_name: Optional[str] = None

    @property
    def is_restack(self) -> bool:
        return (self.additional_fee_name or "").strip().lower() in RESTACK_FEE_NAMES

    @classmethod
    def from_api(cls, data: Dict) -> "AncillaryItem":
        return cls(
            po_number=data.get("pO_Number") or "",
            additional_fee_name=data.get("additional_Fee_Name") or "",
            quantity=_count(data.get("quantity")),
            carrier_name=data.get("carrier_Name") or None,
        )


@dataclass
class TruckSummary:
    truck_id: str
    driver_wallet_checkout_id: Optional[str] = None
    carrier_name: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict) -> "TruckSummary":
        checkout_id = data.get("driverWalletCheckoutID")
        return cls(
            truck_id=data.get("truckID") or "",
            driver_wallet_checkout_id=str(checkout_id) if checkout_id else None,
            carrier_name=data.get("carrierName") or None,
        )


@dataclass
class ScanResult:
    sub_dept: int
    po_number: str
    truck_id: str
    carrier: str
    pallets_in: float
    restacks_upstacks: float
    status: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Action:
    type: str  # cancelled|over-no-wallet
    po_number: str
    truck_id: str
    carrier: str
    pallets_in: float
    restacks_upstacks: float
    driver_wallet_checkout_id: Optional[str]
    timestamp: str

    @classmethod
    def now(cls, type: str, result: ScanResult, checkout_id: Optional[str] = None) -> "Action":
        return cls(
            type=type,
            po_number=result.po_number,
            truck_id=result.truck_id,
            carrier=result.carrier,
            pallets_in=result.pallets_in,
            restacks_upstacks=result.restacks_upstacks,
            driver_wallet_checkout_id=checkout_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> Dict:
        return asdict(self)
