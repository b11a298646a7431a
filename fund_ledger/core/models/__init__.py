from .estimate import FundEstimate
from .instruction import (
    BuyInstruction,
    ConvertInstruction,
    ConvertResult,
    Instruction,
    SellInstruction,
    SellResult,
    SipInstruction,
    parse_instruction,
)
from .position import Position
from .sip_plan import SipCycle, SipPlan, SipRunResult, SipStatus
from .timing import SellTiming, TradeTiming
from .trade_record import AmountUnit, Direction, RecordType, TradeRecord, TradeTimeSlot

"""
领域模型聚合导出。

说明：仅做名称聚合，不引入额外逻辑，便于上层模块统一引用。
"""

__all__ = [
    # 持仓与交易记录
    "Position",
    "TradeRecord",
    "RecordType",
    "Direction",
    "AmountUnit",
    "TradeTimeSlot",
    # 时间口径
    "TradeTiming",
    "SellTiming",
    # 定投
    "SipPlan",
    "SipCycle",
    "SipStatus",
    "SipRunResult",
    # 指令与结果
    "Instruction",
    "BuyInstruction",
    "SellInstruction",
    "SipInstruction",
    "ConvertInstruction",
    "SellResult",
    "ConvertResult",
    "parse_instruction",
    # 行情
    "FundEstimate",
]
