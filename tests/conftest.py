from datetime import datetime

import pytest

from fund_ledger.core.ledger.book import FundBook
from fund_ledger.data.db.db_helper import DbHelper
from fund_ledger.data.db.state_repo import LedgerStateRepo

# 2024-01-08 为周一，16:00 已收盘
FIXED_NOW = datetime(2024, 1, 8, 16, 0, 0)


@pytest.fixture
def book() -> FundBook:
    return FundBook(clock=lambda: FIXED_NOW)


@pytest.fixture
def make_book():
    """按给定“当前时间”构造账本。"""

    def _make(now: datetime) -> FundBook:
        return FundBook(clock=lambda: now)

    return _make


@pytest.fixture
def state_repo():
    helper = DbHelper(":memory:")
    helper.init_schema_if_needed()
    yield LedgerStateRepo(helper.get_connection())
    helper.close()
