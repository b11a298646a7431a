from __future__ import annotations

import json
import re
import threading
from decimal import Decimal, InvalidOperation
from time import sleep
from urllib.parse import quote

import httpx

from fund_ledger.core.log import log
from fund_ledger.core.models.estimate import FundEstimate

# 进程内唯一的请求队列：所有估值/搜索请求按到达顺序逐个执行
_REQUEST_LOCK = threading.Lock()

_JSONP_BODY_RE = re.compile(r"\{.*\}", re.S)


class EastmoneyClient:
    """
    东方财富 / 天天基金行情客户端。

    职责：
    - 获取盘中估值快照（get_estimate / get_estimates）
    - 按基金代码查询基金名称（search_fund_name）

    设计原则：
    - 仅负责 HTTP 请求与响应解析，不直接修改账本；
    - 所有网络/解析异常均被捕获并记录，返回 None，由上层决定是否重试；
    - 请求经由进程级锁串行化，同一时刻只有一个在途请求；
    - 使用 httpx 同步 Client，支持超时与有限重试（指数退避）。
    """

    def __init__(
        self,
        *,
        timeout: float = 3.0,
        retries: int = 2,
        user_agent: str | None = None,
        backoff_base: float = 0.2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        初始化客户端。

        Args:
            timeout: 单次请求超时时间（秒）。
            retries: 最大重试次数（>=0），不包含初次请求。
            user_agent: 自定义 User-Agent 头（可选）。
            backoff_base: 重试指数退避基础间隔（秒），实际等待约为 base * 2^attempt。
            transport: 自定义 httpx 传输层（测试时注入 MockTransport）。
        """
        if retries < 0:
            raise ValueError("retries 必须 >= 0")
        self.timeout = timeout
        self.retries = retries
        self.user_agent = user_agent or "fund-ledger/0.1"
        self.backoff_base = backoff_base
        self.transport = transport

    # ============================================================
    # 区域：盘中估值（get_estimate / get_estimates / _parse_estimate）
    # ============================================================

    def get_estimate(self, fund_code: str) -> FundEstimate | None:
        """
        获取盘中估值快照，仅用于展示与当日收益口径，不参与份额结算。

        数据源：天天基金 fundgz 接口，返回格式 `jsonpgz({...});`。

        Args:
            fund_code: 基金代码（6 位数字）。

        Returns:
            FundEstimate 或 None（网络失败、字段缺失、数据非法）。
        """
        url = f"http://fundgz.1234567.com.cn/js/{fund_code}.js"
        headers = {
            "User-Agent": self.user_agent,
            "Referer": "http://fund.eastmoney.com/",
        }
        text = self._fetch_text(url, headers=headers)
        if text is None:
            return None
        estimate = self._parse_estimate(fund_code, text)
        if estimate is None:
            log(f"[Client:Eastmoney] 盘中估值无法解析：fund={fund_code}")
        return estimate

    def get_estimates(self, fund_codes: list[str]) -> dict[str, FundEstimate]:
        """
        批量获取估值快照（去重、去空后逐个请求）。

        Returns:
            code -> FundEstimate，获取失败的代码不出现在结果中。
        """
        result: dict[str, FundEstimate] = {}
        for code in dict.fromkeys(c.strip() for c in fund_codes if c and c.strip()):
            estimate = self.get_estimate(code)
            if estimate is not None:
                result[code] = estimate
        return result

    @staticmethod
    def _parse_estimate(fund_code: str, text: str) -> FundEstimate | None:
        m = _JSONP_BODY_RE.search(text)
        if not m:
            return None
        try:
            data = json.loads(m.group(0))
            gsz = Decimal(str(data.get("gsz") or "0"))
            dwjz = Decimal(str(data.get("dwjz") or "0"))
            gszzl = Decimal(str(data.get("gszzl") or "0"))
        except (json.JSONDecodeError, InvalidOperation, TypeError, ValueError):
            return None
        if gsz <= 0 and dwjz <= 0:
            return None
        return FundEstimate(
            code=str(data.get("fundcode") or fund_code),
            name=str(data.get("name") or ""),
            nav_estimate=gsz,
            nav_last=dwjz,
            day_change_percent=gszzl,
            as_of=str(data.get("gztime") or ""),
        )

    # ============================================================
    # 区域：名称查询（search_fund_name）
    # ============================================================

    def search_fund_name(self, fund_code: str) -> str | None:
        """
        按基金代码查询基金名称。

        Returns:
            完全匹配该代码的基金名称；未找到返回 None。
        """
        url = (
            "https://fundsuggest.eastmoney.com/FundSearch/api/FundSearchAPI.ashx"
            f"?m=1&key={quote(fund_code)}"
        )
        headers = {
            "User-Agent": self.user_agent,
            "Referer": "https://fund.eastmoney.com/",
            "Accept": "application/json, text/javascript, */*; q=0.01",
        }
        text = self._fetch_text(url, headers=headers)
        if text is None:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as err:
            log(f"[Client:Eastmoney] 搜索结果 JSON 解析失败：fund={fund_code} err={err}")
            return None

        items = data.get("Datas") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return None
        for item in items:
            if not isinstance(item, dict):
                continue
            code = item.get("CODE") or item.get("FCODE")
            name = item.get("NAME") or item.get("SHORTNAME")
            if code == fund_code and name:
                return str(name)
        return None

    # ============================================================
    # 区域：HTTP（串行化 + 重试）
    # ============================================================

    def _fetch_text(self, url: str, *, headers: dict[str, str]) -> str | None:
        """
        发起 HTTP GET 并返回响应文本。

        行为说明：
        - 5xx/429 与网络异常：按指数退避重试，超出次数后返回 None；
        - 其它非 200：记录一条提示并返回 None（不重试）。
        """
        attempt = 0
        while True:
            try:
                with _REQUEST_LOCK:
                    with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                        resp = client.get(url, headers=headers)
                if resp.status_code >= 500 or resp.status_code == 429:
                    resp.raise_for_status()
                if resp.status_code != 200:
                    log(f"[Client:Eastmoney] HTTP 状态异常：status={resp.status_code} url={url}")
                    return None
                return resp.text
            except httpx.HTTPError as err:
                log(f"[Client:Eastmoney] 请求失败：url={url} err={err}")
                if attempt >= self.retries:
                    return None
                attempt += 1
                sleep(self.backoff_base * (2**attempt))
