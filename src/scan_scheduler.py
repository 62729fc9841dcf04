"""
スキャンスケジューラ / セッション管理

状態:
- unauthenticated: トークン未取得
- authenticated:   トークン取得済み（停止中）
- scanning:        一定間隔でスキャン中

401を検知したら該当トークンを再取得し、次の周期で再試行する。
再取得に失敗した場合はスキャンを停止して停止アラートを送る。
"""

import threading
import time
from datetime import datetime
from typing import Dict, List, Optional

from console import log
from errors import APEX, LOAD_ENTRY, AuthExpired
from models import STATUS_CANCELLED, STATUS_OVER
from scanner import Scanner
from token_provider import TokenProvider

BOTH = "both"

STATE_UNAUTHENTICATED = "unauthenticated"
STATE_AUTHENTICATED = "authenticated"
STATE_SCANNING = "scanning"


class ScanScheduler:

    def __init__(self, scanner: Scanner, token_provider: TokenProvider, notifier,
                 sub_depts: List[int], interval: float = 10):
        self.scanner = scanner
        self.token_provider = token_provider
        self.notifier = notifier
        self.sub_depts = list(sub_depts)
        self.interval = interval

        self.apex_token: Optional[str] = None
        self.load_entry_token: Optional[str] = None
        self.last_scan_result: Optional[Dict] = None
        self.stats = {
            "total_scans": 0,
            "successful_scans": 0,
            "errors": 0,
            "last_error": None,
            "start_time": datetime.now(),
            "last_scan_time": None,
        }

        self._scanning = False
        self._cycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.apex_token and self.load_entry_token)

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def state(self) -> str:
        if self._scanning:
            return STATE_SCANNING
        if self.is_authenticated:
            return STATE_AUTHENTICATED
        return STATE_UNAUTHENTICATED

    # --- 認証 ---

    def authenticate(self) -> bool:
        """両方のトークンを取得する"""
        try:
            log("🔐 認証を開始します...")
            apex_token = self.token_provider.acquire_apex_token()
            log(f"✅ Apex トークン取得 ({apex_token[:20]}...)")
            load_entry_token = self.token_provider.acquire_load_entry_token()
            log(f"✅ Load Entry トークン取得 ({load_entry_token[:20]}...)")
        except Exception as e:
            log(f"❌ 認証に失敗しました: {e}")
            self.stats["last_error"] = str(e)
            return False

        # 実行中のサイクルが終わってから差し替える
        with self._cycle_lock:
            self.apex_token = apex_token
            self.load_entry_token = load_entry_token
        log("🎯 認証完了 - スキャン可能です")
        return True

    def reauth(self, which: str) -> bool:
        """期限切れのトークンを再取得する（which: apex / load_entry / both）"""
        log(f"🔄 {which} トークンの期限切れ - 再認証します...")
        try:
            if which in (APEX, BOTH):
                self.apex_token = self.token_provider.acquire_apex_token()
                log("✅ Apex 再認証成功")
            if which in (LOAD_ENTRY, BOTH):
                self.load_entry_token = self.token_provider.acquire_load_entry_token()
                log("✅ Load Entry 再認証成功")
            return True
        except Exception as e:
            log(f"❌ 再認証に失敗しました: {e}")
            self.stats["last_error"] = str(e)
            return False

    # --- スキャン制御 ---

    def start(self) -> bool:
        """直ちに1回スキャンし、以後 interval 秒ごとに実行する"""
        if self._scanning:
            log("⚠️ スキャナーは既に動作中です")
            return False
        if not self.is_authenticated:
            log("❌ 未認証のためスキャンを開始できません")
            return False

        log(f"🚀 スキャン開始 - サブ部門 {', '.join(str(s) for s in self.sub_depts)} を {self.interval} 秒ごとに監視")
        self._scanning = True
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                        name="pallet-guard-scanner", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> bool:
        """次のスキャンを止める（実行中のスキャンは最後まで走る）"""
        if not self._scanning:
            log("⚠️ スキャナーは動作していません")
            return False

        log("🛑 スキャナーを停止します")
        self._scanning = False
        if self._stop_event:
            self._stop_event.set()
        return True

    def join(self, timeout: Optional[float] = None):
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout)

    def shutdown(self, timeout: Optional[float] = None):
        if self._scanning:
            self.stop()
        self.join(timeout)
        try:
            self.token_provider.release()
        except Exception as e:
            log(f"⚠️ リソース解放でエラー: {e}")

    def _run(self, stop_event: threading.Event):
        # 固定間隔。スキャンが間隔を超えた場合、過ぎた周期は積まずに捨てる
        next_tick = time.monotonic()
        while not stop_event.is_set():
            self.perform_scan()
            next_tick += self.interval
            now = time.monotonic()
            if now > next_tick:
                skipped = int((now - next_tick) // self.interval) + 1
                log(f"⏭️ スキャンが間隔を超えたため {skipped} 周期スキップします")
                next_tick += skipped * self.interval
            if stop_event.wait(next_tick - now):
                break

    def perform_scan(self) -> bool:
        """1サイクル実行。別のサイクルが実行中なら何もしない"""
        if not self._cycle_lock.acquire(blocking=False):
            log("⏳ 前回のスキャンが実行中のためスキップします")
            return False
        try:
            return self._perform_scan()
        finally:
            self._cycle_lock.release()

    def _perform_scan(self) -> bool:
        if not self.is_authenticated:
            log("❌ 未認証のためスキャンできません")
            return False

        self.stats["total_scans"] += 1
        self.stats["last_scan_time"] = datetime.now()

        try:
            result = self.scanner.run_cycle(self.sub_depts, self.apex_token, self.load_entry_token)
        except AuthExpired as e:
            self.stats["errors"] += 1
            self._dispatch(e.pending_actions)
            self._handle_auth_expired(e)
            return False
        except Exception as e:
            self.stats["errors"] += 1
            self.stats["last_error"] = str(e)
            log(f"❌ スキャンエラー: {e}")
            return False

        self.last_scan_result = {
            "timestamp": datetime.now().isoformat(),
            "po_count": len(result.po_data),
            "over_count": result.count(STATUS_OVER),
            "cancelled_count": result.count(STATUS_CANCELLED),
            "actions": len(result.actions),
            "po_data": [p.to_dict() for p in result.po_data],
        }

        self._dispatch(result.actions)

        self.stats["successful_scans"] += 1
        log(f"✅ スキャン完了: {len(result.po_data)} POs, {len(result.actions)} actions")
        return True

    def _dispatch(self, actions):
        for action in actions:
            try:
                self.notifier.notify(action)
                log(f"📧 通知送信: PO {action.po_number} ({action.type})")
            except Exception as e:
                log(f"⚠️ 通知に失敗: {e}")

    def _handle_auth_expired(self, error: AuthExpired):
        source = getattr(error, "source", None)
        which = source if source in (APEX, LOAD_ENTRY) else BOTH

        if self.reauth(which):
            log("🔄 再認証成功 - 次の周期で再試行します")
            return

        log("💥 再認証に失敗 - スキャナーを停止します")
        if self._scanning:
            self.stop()
        try:
            self.notifier.notify_down(f"{which} の再認証に失敗: {self.stats['last_error']}")
        except Exception as e:
            log(f"⚠️ 停止アラートの送信に失敗: {e}")

    def status(self) -> Dict:
        """ダッシュボード等から参照する読み取り専用のスナップショット"""
        stats = dict(self.stats)
        uptime = int((datetime.now() - stats["start_time"]).total_seconds())
        stats["start_time"] = stats["start_time"].isoformat()
        if stats["last_scan_time"]:
            stats["last_scan_time"] = stats["last_scan_time"].isoformat()
        return {
            "service": "Pallet Guard",
            "uptime": uptime,
            "state": self.state,
            "authenticated": self.is_authenticated,
            "scanning": self._scanning,
            "sub_depts": list(self.sub_depts),
            "stats": stats,
            "last_scan": self.last_scan_result,
        }
