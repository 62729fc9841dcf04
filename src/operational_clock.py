from datetime import date, datetime, timedelta
from typing import Optional

DAY_BOUNDARY_HOUR = 2  # 2:00前は前日のシフト扱い


def operational_date(now: Optional[datetime] = None, boundary_hour: int = DAY_BOUNDARY_HOUR) -> date:
    """業務日付を返す（ホストのローカル時刻基準）"""
    now = now or datetime.now()
    if now.hour < boundary_hour:
        return now.date() - timedelta(days=1)
    return now.date()


def apex_date(now: Optional[datetime] = None, boundary_hour: int = DAY_BOUNDARY_HOUR) -> str:
    """Apex API用 MM-DD-YYYY"""
    return operational_date(now, boundary_hour).strftime("%m-%d-%Y")


def load_entry_date(now: Optional[datetime] = None, boundary_hour: int = DAY_BOUNDARY_HOUR) -> str:
    """Load Entry API用 YYYY-MM-DD"""
    return operational_date(now, boundary_hour).strftime("%Y-%m-%d")
