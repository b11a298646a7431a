from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Callable

from fund_ledger.core.errors import RejectReason, TradeRejected
from fund_ledger.core.ledger.position_ledger import PositionLedger, rescale_profit
from fund_ledger.core.ledger.record_log import TradeRecordLog
from fund_ledger.core.models.instruction import (
    BuyInstruction,
    ConvertInstruction,
    ConvertResult,
    Instruction,
    SellInstruction,
    SellResult,
    SipInstruction,
)
from fund_ledger.core.models.trade_record import TradeRecord, TradeTimeSlot
from fund_ledger.core.rules.precision import ZERO, quantize_amount, quantize_nav, quantize_shares, to_decimal
from fund_ledger.core.trading.timing import (
    format_occurred_at,
    resolve_buy_timing,
    resolve_convert_timing,
    resolve_sell_timing,
    resolve_sip_timing,
)


def default_fund_name(code: str) -> str:
    """未知名称时的展示兜底。"""
    return f"基金{code}"


class TradeService:
    """
    交易操作编排：时间口径解析 → 持仓变更 → 追加交易记录。

    约定：
    - 每个操作都是一次性的：先完成全部校验，校验失败抛出 TradeRejected，此时不产生任何变更；
    - 校验通过后的变更均为内存操作，不会中途失败；
    - 申请时刻 request_at 缺省取当前时间，可由调用方（测试/补跑）显式传入。
    """

    def __init__(
        self,
        positions: PositionLedger,
        records: TradeRecordLog,
        *,
        name_resolver: Callable[[str], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.positions = positions
        self.records = records
        self.name_resolver = name_resolver or default_fund_name
        self.clock = clock or datetime.now

    # ========== 买入 ==========

    def buy(
        self,
        code: str,
        amount: Decimal,
        *,
        day_rate: Decimal | None = None,
        slot: TradeTimeSlot = "after-close",
        fund_name: str | None = None,
        request_at: datetime | None = None,
    ) -> TradeRecord:
        """
        按金额买入。

        Returns:
            追加的交易记录（type=buy，unit=currency）。

        Raises:
            TradeRejected: 代码为空或金额 <= 0。
        """
        code = _require_code(code)
        amount = _require_positive(amount, "买入金额", quantize_amount)
        name = self._name(code, fund_name)

        at = request_at or self.clock()
        timing = resolve_buy_timing(at, slot)
        position = self.positions.ensure(code)
        self.positions.apply(code, amount, position.profit, day_rate)

        return self.records.append(
            code=code,
            fund_name=name,
            record_type="buy",
            direction="buy",
            amount=amount,
            unit="currency",
            timing=timing,
            occurred_at=format_occurred_at(at, slot),
        )

    # ========== 卖出 ==========

    def sell(
        self,
        code: str,
        share: Decimal,
        nav: Decimal,
        *,
        day_rate: Decimal | None = None,
        slot: TradeTimeSlot = "after-close",
        fund_name: str | None = None,
        request_at: datetime | None = None,
    ) -> SellResult:
        """
        按份额卖出，卖出份额不超过 amount / nav。

        说明：
        - 实际卖出份额 = min(申请份额, 最大可卖份额)，因此剩余金额不会小于 0；
        - 累计收益按剩余比例缩放（见 rescale_profit）；全部卖出时删除持仓。

        Raises:
            TradeRejected: 参数非法，或无可卖持仓。
        """
        code = _require_code(code)
        share = _require_positive(share, "卖出份额", quantize_shares)
        nav = _require_positive(nav, "净值", quantize_nav)

        position = self.positions.get(code)
        if position is None or position.amount <= ZERO:
            raise TradeRejected(RejectReason.INSUFFICIENT_POSITION, f"无可卖持仓：{code}")

        max_sell_share = self.positions.max_sell_share(code, nav)
        sold_share = min(share, max_sell_share)
        if sold_share <= ZERO:
            raise TradeRejected(RejectReason.INSUFFICIENT_POSITION, f"可卖份额为 0：{code}")

        amount = position.amount
        if sold_share == max_sell_share:
            sold_amount = amount
        else:
            sold_amount = min(amount, quantize_amount(sold_share * nav))
        next_amount = amount - sold_amount
        next_profit = rescale_profit(position.profit, amount, next_amount)
        name = self._name(code, fund_name)

        at = request_at or self.clock()
        timing = resolve_sell_timing(at, slot)
        self.positions.apply(code, -sold_amount, next_profit, day_rate)

        record = self.records.append(
            code=code,
            fund_name=name,
            record_type="sell",
            direction="sell",
            amount=sold_share,
            unit="share",
            timing=timing,
            occurred_at=format_occurred_at(at, slot),
        )
        return SellResult(
            sold_share=sold_share,
            sold_amount=sold_amount,
            max_sell_share=max_sell_share,
            record=record,
        )

    # ========== 定投 ==========

    def sip(
        self,
        code: str,
        amount: Decimal,
        *,
        day_rate: Decimal | None = None,
        fund_name: str | None = None,
        request_at: datetime | date | None = None,
    ) -> TradeRecord:
        """
        定投扣款：与买入相同的持仓变更，时间口径按定投规则（不区分收盘前/后）。

        说明：定投按每日固定时点批量扣款，记录时刻统一按收盘前格式化。
        """
        code = _require_code(code)
        amount = _require_positive(amount, "定投金额", quantize_amount)
        name = self._name(code, fund_name)

        at = _as_datetime(request_at) if request_at is not None else self.clock()
        timing = resolve_sip_timing(at)
        position = self.positions.ensure(code)
        self.positions.apply(code, amount, position.profit, day_rate)

        return self.records.append(
            code=code,
            fund_name=name,
            record_type="sip",
            direction="buy",
            amount=amount,
            unit="currency",
            timing=timing,
            occurred_at=format_occurred_at(at, "before-close"),
        )

    # ========== 转换 ==========

    def convert(
        self,
        source_code: str,
        target_code: str,
        out_amount: Decimal,
        in_amount: Decimal,
        *,
        source_day_rate: Decimal | None = None,
        target_day_rate: Decimal | None = None,
        slot: TradeTimeSlot = "after-close",
        fund_name: str | None = None,
        request_at: datetime | None = None,
    ) -> ConvertResult:
        """
        基金转换：转出 source，转入 target。

        说明：
        - 实际转出金额 = min(out_amount, 转出基金持仓金额)，转出侧收益按比例缩放；
        - 转入侧仅增加金额，收益不变（转入资金视为新本金）；
        - 仅为转出侧追加一条记录（type=convert，direction=sell），转入侧不单独记录。

        Raises:
            TradeRejected: 代码为空/相同、金额 <= 0，或转出基金无持仓。
        """
        source_code = _require_code(source_code)
        target_code = _require_code(target_code)
        if source_code == target_code:
            raise TradeRejected(RejectReason.INVALID_INPUT, f"转出与转入基金相同：{source_code}")
        out_amount = _require_positive(out_amount, "转出金额", quantize_amount)
        in_amount = _require_positive(in_amount, "转入金额", quantize_amount)

        source = self.positions.get(source_code)
        if source is None or source.amount <= ZERO:
            raise TradeRejected(RejectReason.INSUFFICIENT_POSITION, f"转出基金无持仓：{source_code}")

        source_amount = source.amount
        actual_out = min(out_amount, source_amount)
        next_amount = source_amount - actual_out
        next_profit = rescale_profit(source.profit, source_amount, next_amount)
        name = self._name(source_code, fund_name)

        at = request_at or self.clock()
        timing = resolve_convert_timing(at, slot)
        self.positions.apply(source_code, -actual_out, next_profit, source_day_rate)

        target = self.positions.ensure(target_code)
        target_after = self.positions.apply(target_code, in_amount, target.profit, target_day_rate)

        record = self.records.append(
            code=source_code,
            fund_name=name,
            record_type="convert",
            direction="sell",
            amount=actual_out,
            unit="currency",
            timing=timing,
            occurred_at=format_occurred_at(at, slot),
            counterpart_code=target_code,
        )
        return ConvertResult(
            actual_out=actual_out,
            in_amount=in_amount,
            source_remaining=self.positions.amount_of(source_code),
            target_amount=target_after.amount if target_after else ZERO,
            record=record,
        )

    # ========== 指令分发 ==========

    def execute(self, instruction: Instruction) -> TradeRecord | SellResult | ConvertResult:
        """按指令变体分发到对应操作。"""
        if isinstance(instruction, BuyInstruction):
            return self.buy(
                instruction.code,
                instruction.amount,
                day_rate=instruction.day_rate,
                slot=instruction.slot,
                fund_name=instruction.fund_name,
                request_at=instruction.request_at,
            )
        if isinstance(instruction, SellInstruction):
            return self.sell(
                instruction.code,
                instruction.share,
                instruction.nav,
                day_rate=instruction.day_rate,
                slot=instruction.slot,
                fund_name=instruction.fund_name,
                request_at=instruction.request_at,
            )
        if isinstance(instruction, SipInstruction):
            return self.sip(
                instruction.code,
                instruction.amount,
                day_rate=instruction.day_rate,
                fund_name=instruction.fund_name,
                request_at=instruction.request_at,
            )
        if isinstance(instruction, ConvertInstruction):
            return self.convert(
                instruction.source_code,
                instruction.target_code,
                instruction.out_amount,
                instruction.in_amount,
                source_day_rate=instruction.source_day_rate,
                target_day_rate=instruction.target_day_rate,
                slot=instruction.slot,
                fund_name=instruction.fund_name,
                request_at=instruction.request_at,
            )
        raise TradeRejected(RejectReason.INVALID_INPUT, f"未知指令类型：{type(instruction).__name__}")

    def _name(self, code: str, fund_name: str | None) -> str:
        name = (fund_name or "").strip()
        return name or self.name_resolver(code)


# ========== 私有辅助函数 ==========


def _require_code(code: str | None) -> str:
    text = (code or "").strip()
    if not text:
        raise TradeRejected(RejectReason.INVALID_INPUT, "基金代码为空")
    return text


def _require_positive(
    value: Decimal | None,
    label: str,
    quantize: Callable[[Decimal], Decimal] | None = None,
) -> Decimal:
    number = to_decimal(value)
    if quantize is not None:
        number = quantize(number)
    if number <= ZERO:
        raise TradeRejected(RejectReason.INVALID_INPUT, f"{label}必须大于 0：{value}")
    return number


def _as_datetime(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())
