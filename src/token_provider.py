import os
import json
from datetime import datetime
from typing import Dict, Optional

from errors import AuthFailure

DEFAULT_TOKEN_FILE = ".tokens.json"


class TokenProvider:
    """Apex / Load Entry のBearerトークン取得インターフェース"""

    def acquire_apex_token(self) -> str:
        raise NotImplementedError

    def acquire_load_entry_token(self) -> str:
        raise NotImplementedError

    def release(self):
        """ブラウザ等の外部リソースを解放（不要なら何もしない）"""


class FileTokenProvider(TokenProvider):
    """トークンファイル（なければ環境変数）からトークンを読み込む

    ファイルは取得のたびに読み直すので、外部のログイン処理が
    トークンを更新すれば再認証時にそれが使われる。
    """

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path or os.getenv("PALLET_GUARD_TOKEN_FILE", DEFAULT_TOKEN_FILE)

    def save_tokens(self, token_data: Dict):
        """トークンをローカルファイルに保存"""
        data = dict(token_data)
        data["saved_at"] = datetime.now().isoformat()
        with open(self.file_path, 'w') as f:
            json.dump(data, f, indent=2)
        print(f"💾 トークンを {self.file_path} に保存しました")

    def load_tokens(self) -> Dict:
        try:
            with open(self.file_path, 'r') as f:
                return json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise AuthFailure(f"トークンファイルが壊れています: {self.file_path} ({e})")

    def _acquire(self, key: str, env_name: str, label: str) -> str:
        token = self.load_tokens().get(key) or os.getenv(env_name)
        if not token:
            raise AuthFailure(f"{label} トークンが見つかりません（{self.file_path} または {env_name} を設定してください）")
        return token

    def acquire_apex_token(self) -> str:
        return self._acquire("apex_token", "APEX_TOKEN", "Apex")

    def acquire_load_entry_token(self) -> str:
        return self._acquire("load_entry_token", "LOAD_ENTRY_TOKEN", "Load Entry")
