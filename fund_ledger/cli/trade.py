from __future__ import annotations

import argparse
import sys
from datetime import datetime
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from fund_ledger.core.log import log
from fund_ledger.core.models import TradeRecord
from fund_ledger.core.trading.calendar import format_month_day_week_label
from fund_ledger.flows.fund import resolve_fund_name_by_code
from fund_ledger.flows.market import fetch_day_rates
from fund_ledger.flows.trade import (
    get_trade_records_by_code,
    sync_buy_trade,
    sync_convert_trade,
    sync_sell_trade,
    sync_sip_trade,
)

console = Console()

_TYPE_LABELS = {"buy": "买入", "sell": "卖出", "sip": "定投", "convert": "转换"}


def _parse_datetime(text: str) -> datetime:
    """解析 `YYYY-MM-DD` 或 `YYYY-MM-DD HH:MM`。"""
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise argparse.ArgumentTypeError(f"时间格式应为 YYYY-MM-DD 或 'YYYY-MM-DD HH:MM'：{text}")


def _add_common(parser: argparse.ArgumentParser, *, with_slot: bool = True) -> None:
    parser.add_argument("--name", help="基金名称（默认按代码解析）")
    parser.add_argument("--at", type=_parse_datetime, help="申请时间（默认当前时间）")
    parser.add_argument("--rate", type=Decimal, help="当日涨跌幅 %%（用于当日收益口径）")
    parser.add_argument("--fetch-rate", action="store_true", help="从行情接口获取当日涨跌幅")
    if with_slot:
        parser.add_argument(
            "--slot",
            choices=["before-close", "after-close"],
            default="after-close",
            help="申请时段（默认 after-close，即 15:00 后）",
        )


def _parse_args() -> argparse.Namespace:
    """解析命令行参数。"""
    parser = argparse.ArgumentParser(
        prog="python -m fund_ledger.cli.trade",
        description="交易同步（买入 / 卖出 / 定投 / 转换）",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="子命令")

    # ========== buy 子命令 ==========
    buy_parser = subparsers.add_parser("buy", help="同步一笔买入")
    buy_parser.add_argument("--fund", required=True, help="基金代码")
    buy_parser.add_argument("--amount", required=True, type=Decimal, help="买入金额")
    _add_common(buy_parser)

    # ========== sell 子命令 ==========
    sell_parser = subparsers.add_parser("sell", help="同步一笔卖出（按份额）")
    sell_parser.add_argument("--fund", required=True, help="基金代码")
    sell_parser.add_argument("--share", required=True, type=Decimal, help="卖出份额")
    sell_parser.add_argument("--nav", required=True, type=Decimal, help="用于折算的净值")
    _add_common(sell_parser)

    # ========== sip 子命令 ==========
    sip_parser = subparsers.add_parser("sip", help="同步一笔定投扣款")
    sip_parser.add_argument("--fund", required=True, help="基金代码")
    sip_parser.add_argument("--amount", required=True, type=Decimal, help="定投金额")
    _add_common(sip_parser, with_slot=False)

    # ========== convert 子命令 ==========
    convert_parser = subparsers.add_parser("convert", help="同步一笔基金转换")
    convert_parser.add_argument("--from", dest="source", required=True, help="转出基金代码")
    convert_parser.add_argument("--to", dest="target", required=True, help="转入基金代码")
    convert_parser.add_argument("--out", dest="out_amount", required=True, type=Decimal, help="转出金额")
    convert_parser.add_argument("--in", dest="in_amount", required=True, type=Decimal, help="转入金额")
    _add_common(convert_parser)

    # ========== records 子命令 ==========
    records_parser = subparsers.add_parser("records", help="查询某只基金的交易记录")
    records_parser.add_argument("--fund", required=True, help="基金代码")

    return parser.parse_args()


def _build_payload(args: argparse.Namespace, code: str) -> dict:
    """组装通用载荷字段（名称、申请时间、时段、当日涨跌幅）。"""
    payload: dict = {
        "fund_name": args.name or resolve_fund_name_by_code(code),
        "request_at": args.at,
    }
    if getattr(args, "slot", None):
        payload["slot"] = args.slot
    rate = args.rate
    if rate is None and args.fetch_rate:
        rate = fetch_day_rates([code]).get(code)
    payload["day_rate"] = rate
    return payload


def _do_buy(args: argparse.Namespace) -> int:
    """
    执行 buy 命令。

    Returns:
        退出码：0=成功；4=参数错误/被拒绝；5=其他失败。
    """
    try:
        log(f"[Trade:buy] 同步买入：{args.fund} - {args.amount} 元（{args.slot}）")
        payload = {"code": args.fund, "amount": args.amount, **_build_payload(args, args.fund)}
        if not sync_buy_trade(payload):
            log("❌ 买入未生效（参数非法）")
            return 4
        log("✅ 买入已记录")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 同步买入失败：{err}")
        return 5


def _do_sell(args: argparse.Namespace) -> int:
    """执行 sell 命令。"""
    try:
        log(f"[Trade:sell] 同步卖出：{args.fund} - {args.share} 份 @ {args.nav}")
        payload = {
            "code": args.fund,
            "share": args.share,
            "nav": args.nav,
            **_build_payload(args, args.fund),
        }
        result = sync_sell_trade(payload)
        if result is None:
            log("❌ 卖出未生效（参数非法或无可卖持仓）")
            return 4
        if result.sold_share < args.share:
            log(f"⚠️ 申请份额超过可卖份额，已按最大可卖 {result.max_sell_share} 份处理")
        arrival_start = result.record.cash_arrival_start
        arrival_end = result.record.cash_arrival_end
        log(
            f"✅ 卖出 {result.sold_share} 份，约 {result.sold_amount} 元；"
            f"资金预计 {format_month_day_week_label(arrival_start)} ~ {format_month_day_week_label(arrival_end)} 到账"
        )
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 同步卖出失败：{err}")
        return 5


def _do_sip(args: argparse.Namespace) -> int:
    """执行 sip 命令。"""
    try:
        log(f"[Trade:sip] 同步定投：{args.fund} - {args.amount} 元")
        payload = {"code": args.fund, "amount": args.amount, **_build_payload(args, args.fund)}
        if not sync_sip_trade(payload):
            log("❌ 定投未生效（参数非法）")
            return 4
        log("✅ 定投已记录")
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 同步定投失败：{err}")
        return 5


def _do_convert(args: argparse.Namespace) -> int:
    """执行 convert 命令。"""
    try:
        log(f"[Trade:convert] 同步转换：{args.source} → {args.target}，转出 {args.out_amount} / 转入 {args.in_amount}")
        payload = {
            "source_code": args.source,
            "target_code": args.target,
            "out_amount": args.out_amount,
            "in_amount": args.in_amount,
            **_build_payload(args, args.source),
        }
        payload["source_day_rate"] = payload.pop("day_rate")
        result = sync_convert_trade(payload)
        if result is None:
            log("❌ 转换未生效（参数非法或转出基金无持仓）")
            return 4
        log(
            f"✅ 转换完成：转出 {result.actual_out} 元（剩余 {result.source_remaining}），"
            f"转入后持有 {result.target_amount} 元"
        )
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 同步转换失败：{err}")
        return 5


def _render_records(code: str, records: list[TradeRecord]) -> None:
    table = Table(title=f"{code} 交易记录")
    for column in ("ID", "时间", "类型", "方向", "数量", "成交日", "确认日"):
        table.add_column(column)
    for r in records:
        unit = "元" if r.unit == "currency" else "份"
        table.add_row(
            str(r.id),
            r.occurred_at,
            _TYPE_LABELS.get(r.type, r.type),
            r.direction,
            f"{r.amount} {unit}",
            r.trade_date.isoformat(),
            r.confirm_date.isoformat(),
        )
    console.print(table)


def _do_records(args: argparse.Namespace) -> int:
    """执行 records 命令。"""
    try:
        records = get_trade_records_by_code(args.fund)
        if not records:
            log(f"（{args.fund} 暂无交易记录）")
            return 0
        _render_records(args.fund, records)
        return 0
    except Exception as err:  # noqa: BLE001
        log(f"❌ 查询交易记录失败：{err}")
        return 5


def main() -> int:
    """
    交易同步 CLI。

    Returns:
        退出码：0=成功；4=参数错误/被拒绝；5=其他失败。
    """
    args = _parse_args()

    if args.command == "buy":
        return _do_buy(args)
    elif args.command == "sell":
        return _do_sell(args)
    elif args.command == "sip":
        return _do_sip(args)
    elif args.command == "convert":
        return _do_convert(args)
    elif args.command == "records":
        return _do_records(args)
    else:
        log(f"❌ 未知命令：{args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
