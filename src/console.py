from datetime import datetime


def log(message: str):
    """タイムスタンプ付きで標準出力に出す（常駐プロセス用）"""
    print(f"[{datetime.now().isoformat(timespec='seconds')}] {message}", flush=True)
