"""Harvest History.

report마다 기록된 ReportRecord를 pandas DataFrame으로 변환하고
전략별 요약, share 가격 추이, 연환산 수익률을 계산합니다.

Rules Applied:
    - #12 Data Engineering: Vectorization, DatetimeIndex (UTC)
    - #25 QuantStats Standards: 365일 기준 연환산
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from src.vault.constants import SECS_PER_YEAR

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.vault.models import ReportResult

_REPORT_COLUMNS = [
    "strategy_id",
    "gain",
    "loss",
    "debt_payment",
    "credit",
    "debt_outstanding",
    "management_fee",
    "performance_fee",
    "strategist_fee",
    "total_fees",
    "fee_shares",
    "strategist_shares",
    "net_profit",
    "price_per_share",
    "total_assets",
    "total_shares",
    "locked_profit",
]


@dataclass(frozen=True)
class ReportRecord:
    """report 1회의 결과와 직후 볼트 스냅샷.

    Attributes:
        timestamp: report 시각 (unix seconds)
        result: report 결과
        price_per_share: report 직후 share 가격
        total_assets: report 직후 free assets
        total_shares: report 직후 share 총량
        locked_profit: report 직후 잠금 이익
    """

    timestamp: int
    result: ReportResult
    price_per_share: int
    total_assets: int
    total_shares: int
    locked_profit: int

    def to_row(self) -> dict[str, object]:
        """DataFrame 행 변환."""
        result = self.result
        return {
            "timestamp": self.timestamp,
            "strategy_id": result.strategy_id,
            "gain": result.gain,
            "loss": result.loss,
            "debt_payment": result.debt_payment,
            "credit": result.credit,
            "debt_outstanding": result.debt_outstanding,
            "management_fee": result.fees.management,
            "performance_fee": result.fees.performance,
            "strategist_fee": result.fees.strategist,
            "total_fees": result.fees.total,
            "fee_shares": result.fee_shares,
            "strategist_shares": result.strategist_shares,
            "net_profit": result.net_profit,
            "price_per_share": self.price_per_share,
            "total_assets": self.total_assets,
            "total_shares": self.total_shares,
            "locked_profit": self.locked_profit,
        }

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def reports_frame(records: Sequence[ReportRecord]) -> pd.DataFrame:
    """report 기록 → DataFrame (UTC DatetimeIndex, 시간순).

    Args:
        records: report 기록

    Returns:
        _REPORT_COLUMNS 컬럼을 가진 DataFrame (기록이 없으면 빈 프레임)
    """
    if not records:
        empty = pd.DataFrame(columns=_REPORT_COLUMNS)
        empty.index = pd.DatetimeIndex([], tz="UTC", name="timestamp")
        return empty

    frame = pd.DataFrame([record.to_row() for record in records])
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], unit="s", utc=True)
    return frame.set_index("timestamp").sort_index(kind="stable")[_REPORT_COLUMNS]


def strategy_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """전략별 누적 요약 (report 수, gain/loss/fee 합계)."""
    if frame.empty:
        return pd.DataFrame(
            columns=["reports", "gain", "loss", "total_fees", "net_profit"],
            index=pd.Index([], name="strategy_id"),
        )
    grouped = frame.groupby("strategy_id")
    summary = grouped[["gain", "loss", "total_fees", "net_profit"]].sum()
    summary.insert(0, "reports", grouped.size())
    return summary.astype("int64")


def price_per_share_series(frame: pd.DataFrame) -> pd.Series:
    """report 시점별 share 가격 (같은 시각이면 마지막 값)."""
    series = frame["price_per_share"]
    return series[~series.index.duplicated(keep="last")].astype("int64")


def annualized_return(frame: pd.DataFrame) -> float:
    """첫 report 대비 마지막 report 시점 share 가격의 연환산 수익률 (%).

    Args:
        frame: reports_frame 결과

    Returns:
        연환산 수익률 (%). 기간이 0이거나 기록이 없으면 0.0
    """
    if frame.empty:
        return 0.0
    series = price_per_share_series(frame)
    elapsed = (series.index[-1] - series.index[0]).total_seconds()
    if elapsed <= 0:
        return 0.0
    first = float(series.iloc[0])
    if first <= 0:
        return 0.0
    growth = float(series.iloc[-1]) / first
    if growth <= 0:
        return -100.0
    years = elapsed / SECS_PER_YEAR
    return float((np.power(growth, 1.0 / years) - 1.0) * 100)
