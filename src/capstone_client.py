import requests
from typing import Dict, List

from errors import APEX, LOAD_ENTRY, AuthExpired, MalformedResponse, UpstreamError, VoidFailure

APEX_API = "https://siteadminsso.capstonelogistics.com/api/"
LOAD_ENTRY_API = "https://apexloadentryapi.capstonelogistics.com/api/"


class CapstoneClient:
    """Capstone Apex / Load Entry API クライアント

    トークンは呼び出し毎に渡す（再認証でトークンが差し替わるため保持しない）。
    失敗は AuthExpired / UpstreamError / MalformedResponse のいずれかに正規化する。
    """

    def __init__(self, apex_base_url: str = APEX_API, load_entry_base_url: str = LOAD_ENTRY_API,
                 timeout: float = 30):
        self.apex_base_url = apex_base_url
        self.load_entry_base_url = load_entry_base_url
        self.timeout = timeout

    @staticmethod
    def _headers(token: str) -> Dict:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json"
        }

    def _get_json(self, base_url: str, endpoint: str, token: str, source: str):
        try:
            response = requests.get(base_url + endpoint, headers=self._headers(token), timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(None, endpoint, source, str(e)) from e

        if response.status_code == 401:
            raise AuthExpired(source, endpoint)
        if not response.ok:
            raise UpstreamError(response.status_code, endpoint, source)

        text = response.text
        try:
            return response.json()
        except ValueError:
            raise MalformedResponse(endpoint, text, source)

    def fetch_apex(self, endpoint: str, token: str):
        """Apex (siteadminsso) からJSONを取得"""
        return self._get_json(self.apex_base_url, endpoint, token, APEX)

    def fetch_load_entry(self, endpoint: str, token: str):
        """Load Entry からJSONを取得"""
        return self._get_json(self.load_entry_base_url, endpoint, token, LOAD_ENTRY)

    def void_driver_wallet_checkout(self, checkout_id: str, token: str) -> bool:
        """ドライバーウォレットの支払い（checkout）を取り消す"""
        endpoint = f"payment/driverwallet/checkout/void/{checkout_id}"
        try:
            response = requests.delete(self.load_entry_base_url + endpoint,
                                       headers=self._headers(token), timeout=self.timeout)
        except requests.RequestException as e:
            raise VoidFailure(checkout_id, None, str(e)) from e

        if response.status_code == 401:
            raise AuthExpired(LOAD_ENTRY, endpoint)
        if not response.ok:
            raise VoidFailure(checkout_id, response.status_code)
        return True

    # --- 型付きヘルパー ---

    def get_pos(self, sub_dept: int, date_str: str, token: str) -> List[Dict]:
        """PO一覧（パレット入庫数つき）"""
        return _as_list(self.fetch_apex(f"subdept/{sub_dept}/pos/{date_str}/{date_str}", token))

    def get_ancillary_items(self, sub_dept: int, date_str: str, token: str) -> List[Dict]:
        """付帯作業（Restack/Upstackなど）"""
        return _as_list(self.fetch_apex(f"subdept/{sub_dept}/ancillaryItems/{date_str}/{date_str}", token))

    def get_truck_summaries(self, sub_dept: int, date_str: str, token: str) -> List[Dict]:
        return _as_list(self.fetch_load_entry(f"truckSummaries/{sub_dept}/{date_str}/", token))


def _as_list(data) -> List[Dict]:
    return data if isinstance(data, list) else []
