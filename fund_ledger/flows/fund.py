"""基金名称解析流程。"""

from __future__ import annotations

from fund_ledger.core.dependency import dependency
from fund_ledger.core.ledger.book import FundBook
from fund_ledger.core.ledger.operations import default_fund_name
from fund_ledger.data.client.eastmoney import EastmoneyClient


@dependency
def resolve_fund_name_by_code(
    code: str,
    *,
    fund_book: FundBook | None = None,
    eastmoney_client: EastmoneyClient | None = None,
) -> str:
    """
    按基金代码解析展示名称。

    查找顺序：
    1. 账本中已有的交易记录/定投计划名称；
    2. 东方财富基金搜索；
    3. 盘中估值快照中的名称；
    4. 兜底 `基金{code}`。
    """
    code = (code or "").strip()
    name = fund_book.lookup_name(code)
    if name:
        return name

    name = eastmoney_client.search_fund_name(code)
    if name:
        return name

    estimate = eastmoney_client.get_estimate(code)
    if estimate is not None and estimate.name:
        return estimate.name
    return default_fund_name(code)
