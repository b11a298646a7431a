from __future__ import annotations

import argparse
import sys
import time

from fund_ledger.core.config import get_sip_tick_seconds
from fund_ledger.core.log import log
from fund_ledger.flows.market import fetch_day_rates
from fund_ledger.flows.sip import list_sip_plans, run_due_sip_plans


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m fund_ledger.jobs.run_sip",
        description="定投补跑任务：启动时执行一次，--loop 时按固定间隔轮询",
    )
    parser.add_argument("--loop", action="store_true", help="常驻运行，每隔 SIP_TICK_SECONDS 秒补跑一次")
    parser.add_argument("--fetch-rate", action="store_true", help="补跑前从行情接口获取当日涨跌幅")
    return parser.parse_args()


def _tick(fetch_rate: bool) -> int:
    day_rates = None
    if fetch_rate:
        day_rates = fetch_day_rates(sorted({p.code for p in list_sip_plans()}))
    result = run_due_sip_plans(day_rates=day_rates)
    log(f"✅ 本轮执行 {result.executed_count} 笔定投")
    return result.executed_count


def main() -> int:
    """
    定投补跑任务入口。

    Returns:
        退出码：0=成功；5=未知错误。
    """
    args = _parse_args()
    try:
        log("[Job] run_sip 开始")
        _tick(args.fetch_rate)

        if args.loop:
            interval = get_sip_tick_seconds()
            log(f"[Job] run_sip 进入轮询，间隔 {interval} 秒")
            while True:
                time.sleep(interval)
                try:
                    _tick(args.fetch_rate)
                except Exception as err:  # noqa: BLE001
                    # 单轮失败不退出，下一轮重试
                    log(f"❌ 本轮补跑失败：{err}")

        log("[Job] run_sip 结束")
        return 0
    except KeyboardInterrupt:
        log("[Job] run_sip 已中断")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 执行失败：run_sip - {err}")
        return 5


if __name__ == "__main__":
    sys.exit(main())
