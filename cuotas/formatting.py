from cuotas.models import month_name, parse_month_key, parse_timestamp


def format_currency(amount) -> str:
    """Pesos colombianos sin decimales: 3000 -> '$ 3.000'."""
    value = round(float(amount or 0))
    sign = "-" if value < 0 else ""
    return f"{sign}$ {abs(value):,.0f}".replace(",", ".")


def format_date(value) -> str:
    """'2025-03-05' -> '5 de marzo de 2025'."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value or "")
    return f"{parsed.day} de {month_name(parsed.month).lower()} de {parsed.year}"


def format_short_date(value) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value or "")
    return parsed.strftime("%d/%m/%Y")


def format_month(value, with_year=True) -> str:
    """'2025-03' -> 'Marzo 2025' (o 'Marzo')."""
    key = parse_month_key(value)
    if key is None:
        return str(value or "")
    year, month = key
    if with_year:
        return f"{month_name(month)} {year}"
    return month_name(month)
