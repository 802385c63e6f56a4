import decimal
import typing


NANO_DECIMALS = 9


def to_nano(amount: typing.Union[int, float, str, decimal.Decimal], decimals: int = NANO_DECIMALS) -> int:
    """
    to_nano('1.5') == 1500000000
    Fractional nano parts are truncated.
    """
    if isinstance(amount, float):
        amount = repr(amount)
    try:
        value = decimal.Decimal(amount)
    except decimal.InvalidOperation:
        raise ValueError(f'invalid amount: {amount!r}')
    if not value.is_finite():
        raise ValueError(f'invalid amount: {amount!r}')
    return int(value.scaleb(decimals).to_integral_value(rounding=decimal.ROUND_DOWN))


def from_nano(amount: int, decimals: int = NANO_DECIMALS) -> decimal.Decimal:
    """
    from_nano(1500000000) == Decimal('1.5')
    """
    if not isinstance(amount, int):
        raise ValueError(f'nano amount must be int, got {type(amount).__name__}')
    return decimal.Decimal(amount).scaleb(-decimals).normalize()
