"""
金额/份额/NAV/比率精度工具函数。

统一精度规则：
- 金额：2 位小数（人民币最小单位为分）
- 份额：4 位小数（基金份额通常精确到万分位）
- NAV：4 位小数（基金净值通常为 4 位小数）
- 比率：2 位小数（百分比口径，如 7.48 表示 7.48%）
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")


def quantize_amount(amount: Decimal) -> Decimal:
    """将金额量化为 2 位小数。"""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def quantize_shares(shares: Decimal) -> Decimal:
    """将份额量化为 4 位小数。"""
    return shares.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def quantize_nav(nav: Decimal) -> Decimal:
    """将净值量化为 4 位小数。"""
    return nav.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def quantize_rate(rate: Decimal) -> Decimal:
    """将百分比比率量化为 2 位小数。"""
    return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_decimal(value: object, default: Decimal = ZERO) -> Decimal:
    """
    将输入值转换为 Decimal，非法输入（None/空串/NaN/非数字）回退为 default。

    Args:
        value: 任意输入（str/int/float/Decimal）。
        default: 回退值。

    Returns:
        有限的 Decimal。
    """
    if value is None or value == "":
        return default
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return default
    if not result.is_finite():
        return default
    return result
