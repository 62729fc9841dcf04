import sys
import os
import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

# srcディレクトリをパスに追加
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from capstone_client import CapstoneClient
from errors import APEX, LOAD_ENTRY, AuthExpired, UpstreamError
from reconciliation_state import ReconciliationState
from scanner import Scanner

POS = [{"poNumber": "P1", "truckId": "T1", "palletWhiteInCount": 5,
        "palletChepInCount": 0, "palletPecoInCount": 0, "palletIgpsInCount": 0}]
ANCILLARY = [{"pO_Number": "P1", "additional_Fee_Name": "Restack", "quantity": 7, "carrier_Name": "ACME"}]
TRUCKS = [{"truckID": "T1", "driverWalletCheckoutID": "CO123", "carrierName": "ACME Trucking"}]


@patch.dict(os.environ, {"DRY_RUN": "false"})
class TestScanner(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock(spec=CapstoneClient)
        self.client.get_pos.return_value = POS
        self.client.get_ancillary_items.return_value = ANCILLARY
        self.client.get_truck_summaries.return_value = TRUCKS
        self.client.void_driver_wallet_checkout.return_value = True
        self.state = ReconciliationState()
        self.scanner = Scanner(self.client, self.state, clock=lambda: datetime(2025, 3, 2, 1, 30))

    def test_uses_operational_date_for_each_source(self):
        self.scanner.run_cycle([85], "apex", "le")

        self.client.get_pos.assert_called_once_with(85, "03-01-2025", "apex")
        self.client.get_ancillary_items.assert_called_once_with(85, "03-01-2025", "apex")
        self.client.get_truck_summaries.assert_called_once_with(85, "2025-03-01", "le")

    def test_cancels_over_limit_po(self):
        result = self.scanner.run_cycle([85], "apex", "le")

        self.client.void_driver_wallet_checkout.assert_called_once_with("CO123", "le")
        self.assertEqual(result.po_data[0].status, "CANCELLED")
        self.assertEqual(result.po_data[0].carrier, "ACME")
        self.assertEqual(len(result.actions), 1)

    def test_combines_sub_departments(self):
        self.client.get_pos.side_effect = [
            POS,
            [{"poNumber": "P2", "truckId": "T2", "palletWhiteInCount": 3}],
        ]

        result = self.scanner.run_cycle([85, 86], "apex", "le")

        self.assertEqual([(r.sub_dept, r.po_number) for r in result.po_data], [(85, "P1"), (86, "P2")])
        self.assertEqual(self.client.void_driver_wallet_checkout.call_count, 1)

    def test_truck_fetch_failure_is_tolerated(self):
        self.client.get_truck_summaries.side_effect = UpstreamError(500, "truckSummaries/85/2025-03-01/", LOAD_ENTRY)

        result = self.scanner.run_cycle([85], "apex", "le")

        self.client.void_driver_wallet_checkout.assert_not_called()
        self.assertEqual(result.po_data[0].status, "OVER")
        self.assertEqual(result.actions[0].type, "over-no-wallet")

    def test_truck_fetch_auth_expired_propagates(self):
        self.client.get_truck_summaries.side_effect = AuthExpired(LOAD_ENTRY)

        with self.assertRaises(AuthExpired):
            self.scanner.run_cycle([85], "apex", "le")
        self.assertEqual(self.state.alerted_over_pos, set())

    def test_po_fetch_auth_expired_stops_cycle(self):
        self.client.get_pos.side_effect = AuthExpired(APEX)

        with self.assertRaises(AuthExpired):
            self.scanner.run_cycle([85, 86], "apex", "le")
        self.client.get_ancillary_items.assert_not_called()

    def test_po_fetch_error_propagates(self):
        self.client.get_ancillary_items.side_effect = UpstreamError(502, "x", APEX)

        with self.assertRaises(UpstreamError):
            self.scanner.run_cycle([85], "apex", "le")


if __name__ == "__main__":
    unittest.main()
