"""行情数据流程：估值快照与当日涨跌幅。"""

from __future__ import annotations

from decimal import Decimal

from fund_ledger.core.dependency import dependency
from fund_ledger.core.log import log
from fund_ledger.core.models import FundEstimate
from fund_ledger.data.client.eastmoney import EastmoneyClient


@dependency
def fetch_estimates(
    codes: list[str],
    *,
    eastmoney_client: EastmoneyClient | None = None,
) -> dict[str, FundEstimate]:
    """批量获取盘中估值快照（请求在客户端内串行执行）。"""
    estimates = eastmoney_client.get_estimates(codes)
    missing = sorted({c.strip() for c in codes if c and c.strip()} - set(estimates))
    if missing:
        log(f"[Market] 以下基金未取得估值：{', '.join(missing)}")
    return estimates


@dependency
def fetch_day_rates(
    codes: list[str],
    *,
    eastmoney_client: EastmoneyClient | None = None,
) -> dict[str, Decimal]:
    """
    获取基金当日涨跌幅（百分比），供交易与定投补跑计算当日收益。

    Returns:
        code -> 估算日涨跌幅；取不到的代码不出现在结果中。
    """
    estimates = fetch_estimates(codes, eastmoney_client=eastmoney_client)
    return {code: e.day_change_percent for code, e in estimates.items()}
