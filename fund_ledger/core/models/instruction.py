"""
交易指令（带 kind 标签的变体）与执行结果。

指令模型使用 Pydantic：
- 外部传入的 dict 载荷（蛇形或驼峰键均可）通过 `parse_instruction` 解析为具体变体；
- 这里只做类型层面的校验（数字可解析、代码为字符串等），
  业务规则（金额必须大于 0、同基金不可转换等）由 TradeService 判断。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from fund_ledger.core.models.trade_record import TradeRecord, TradeTimeSlot


class _Instruction(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    fund_name: str | None = Field(None, description="展示名称，缺省时按代码解析")
    request_at: datetime | None = Field(None, description="申请时刻，缺省为当前时间")


class BuyInstruction(_Instruction):
    """买入：按金额申购。"""

    kind: Literal["buy"] = "buy"
    code: str
    amount: Decimal
    day_rate: Decimal | None = None
    slot: TradeTimeSlot = "after-close"


class SellInstruction(_Instruction):
    """卖出：按份额赎回，nav 用于份额与金额换算。"""

    kind: Literal["sell"] = "sell"
    code: str
    share: Decimal
    nav: Decimal
    day_rate: Decimal | None = None
    slot: TradeTimeSlot = "after-close"


class SipInstruction(_Instruction):
    """定投：固定金额，按每日统一扣款时点处理，无收盘前/后之分。"""

    kind: Literal["sip"] = "sip"
    code: str
    amount: Decimal
    day_rate: Decimal | None = None


class ConvertInstruction(_Instruction):
    """基金转换：转出 source 的 out_amount，转入 target 的 in_amount。"""

    kind: Literal["convert"] = "convert"
    source_code: str
    target_code: str
    out_amount: Decimal
    in_amount: Decimal
    source_day_rate: Decimal | None = None
    target_day_rate: Decimal | None = None
    slot: TradeTimeSlot = "after-close"


Instruction = Annotated[
    Union[BuyInstruction, SellInstruction, SipInstruction, ConvertInstruction],
    Field(discriminator="kind"),
]

_INSTRUCTION_ADAPTER: TypeAdapter[Any] = TypeAdapter(Instruction)


def parse_instruction(payload: dict[str, Any], *, kind: str | None = None) -> Instruction:
    """
    将 dict 载荷解析为指令变体。

    Args:
        payload: 原始载荷。
        kind: 指定变体（buy/sell/sip/convert），会覆盖载荷中的 kind。

    Raises:
        pydantic.ValidationError: 载荷缺字段或类型不合法。
    """
    data = dict(payload)
    if kind is not None:
        data["kind"] = kind
    return _INSTRUCTION_ADAPTER.validate_python(data)


@dataclass(slots=True)
class SellResult:
    """卖出结果：实际卖出份额、到账金额与卖出前的最大可卖份额。"""

    sold_share: Decimal
    sold_amount: Decimal
    max_sell_share: Decimal
    record: TradeRecord


@dataclass(slots=True)
class ConvertResult:
    """转换结果：实际转出金额、转入金额与两侧剩余持仓金额。"""

    actual_out: Decimal
    in_amount: Decimal
    source_remaining: Decimal
    target_amount: Decimal
    record: TradeRecord
