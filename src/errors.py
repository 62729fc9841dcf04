"""
Pallet Guard の例外定義

上流APIの失敗は必ず以下のいずれかに分類される:
- AuthExpired: HTTP 401（再認証で回復可能）
- UpstreamError: 401以外の非2xx、または通信エラー
- MalformedResponse: JSONとして解釈できないレスポンス
"""

from typing import Optional

APEX = "apex"
LOAD_ENTRY = "load_entry"


class PalletGuardError(Exception):
    """Pallet Guard の基底例外"""


class AuthExpired(PalletGuardError):
    """トークン期限切れ（401）。sourceでどちらのトークンかを示す"""

    def __init__(self, source: str, path: str = ""):
        self.source = source
        self.path = path
        # 401の時点で既に確定した通知（取消済み・アラート済み）
        self.pending_actions = []
        super().__init__(f"{source} auth expired (401): {path}")


class UpstreamError(PalletGuardError):
    def __init__(self, status: Optional[int], path: str, source: str, detail: str = ""):
        self.status = status
        self.path = path
        self.source = source
        message = f"{source} API {status}: {path}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class MalformedResponse(PalletGuardError):
    def __init__(self, path: str, snippet: str, source: str):
        self.path = path
        self.snippet = snippet[:200]
        self.source = source
        super().__init__(f"{source} API bad JSON for {path}: {self.snippet}")


class AuthFailure(PalletGuardError):
    """トークン取得そのものの失敗"""


class VoidFailure(PalletGuardError):
    def __init__(self, checkout_id: str, status: Optional[int], detail: str = ""):
        self.checkout_id = checkout_id
        self.status = status
        message = f"Void failed {status}: {checkout_id}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
