#!/usr/bin/env python
"""
Pallet Guard 常駐サービス

Apex のPOデータを監視し、restack/upstack がパレット入庫数を超えたPOの
ドライバーウォレット支払いを自動で取り消す。
"""

import os
import sys
import signal
import argparse
import threading
from dotenv import load_dotenv

from capstone_client import CapstoneClient
from config_loader import load_guard_config
from console import log
from notifier import NullNotifier, SlackNotifier
from scan_scheduler import ScanScheduler
from scanner import Scanner
from token_provider import FileTokenProvider

load_dotenv()


def build_scheduler(config: dict) -> ScanScheduler:
    client = CapstoneClient(
        apex_base_url=config["apex_base_url"],
        load_entry_base_url=config["load_entry_base_url"],
        timeout=config["request_timeout_seconds"],
    )
    scanner = Scanner(client, day_boundary_hour=config["day_boundary_hour"])

    slack_webhook_url = os.getenv("SLACK_WEBHOOK_URL")
    notifier = SlackNotifier(slack_webhook_url) if slack_webhook_url else NullNotifier()

    return ScanScheduler(
        scanner,
        FileTokenProvider(),
        notifier,
        sub_depts=config["sub_depts"],
        interval=config["scan_interval_seconds"],
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Pallet Guard - restack/upstack 超過の支払い自動取消")
    parser.add_argument("--once", action="store_true", help="1回だけスキャンして終了")
    parser.add_argument("--config", help="設定ファイルのパス (config/pallet_guard.yml)")
    args = parser.parse_args(argv)

    config = load_guard_config(args.config)
    scheduler = build_scheduler(config)

    log("🛡️ Pallet Guard を起動します")
    log(f"🏢 監視サブ部門: {', '.join(str(s) for s in config['sub_depts'])}")
    if os.getenv("DRY_RUN", "false").lower() == "true":
        log("*** DRY_RUNモード: 支払いの取消は行いません ***")
    if not os.getenv("SLACK_WEBHOOK_URL"):
        log("⚠️ SLACK_WEBHOOK_URL 未設定 - 通知はログ出力のみ")

    if not scheduler.authenticate():
        log("❌ 初回認証に失敗しました - トークンを確認してください")
        return 1

    if args.once:
        ok = scheduler.perform_scan()
        scheduler.shutdown()
        return 0 if ok else 1

    stopped = threading.Event()

    def _on_signal(signum, frame):
        log(f"🛑 シグナル {signum} を受信 - 終了します...")
        stopped.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    scheduler.start()
    while not stopped.wait(1):
        pass

    scheduler.shutdown(timeout=60)
    log("👋 Pallet Guard を停止しました")
    return 0


if __name__ == "__main__":
    sys.exit(main())
