from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal('0.01')


def to_decimal(value, default=None):
    """Convert user/JSON input into a Decimal; returns `default` for garbage."""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def quantize(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value):
    return int((quantize(value) * 100).to_integral_value())


def format_brl(value):
    """Format as Brazilian currency: Decimal('1234.5') -> 'R$ 1.234,50'."""
    text = f'{quantize(value):,.2f}'
    text = text.replace(',', '_').replace('.', ',').replace('_', '.')
    return f'R$ {text}'
