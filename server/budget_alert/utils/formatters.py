"""金额 / 百分比格式化与数值转换"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from babel.numbers import UnknownCurrencyError, format_currency as babel_format_currency, validate_currency

TWO_PLACES = Decimal("0.01")


def to_decimal_or_zero(value) -> Decimal:
    """把数据库 / 请求中的数值统一转成 Decimal，无法解析时按 0 处理"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def round_money(value: Decimal) -> Decimal:
    return to_decimal_or_zero(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_currency(amount, currency: str = "USD", locale: str = "en_US") -> str:
    """按币种本地化格式化金额；未知币种回退为 "<CODE> 123.45" """
    value = round_money(amount)
    code = (currency or "").upper()
    try:
        validate_currency(code)
    except UnknownCurrencyError:
        return f"{code} {value:.2f}"
    return babel_format_currency(value, code, locale=locale)


def format_percentage(value, decimals: int = 2) -> str:
    num = to_decimal_or_zero(value)
    return f"{num:.{decimals}f}%"
