from datetime import datetime

WEEKDAYS_ES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
MONTHS_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def format_long_date_es(value: datetime) -> str:
    """28 Nov 2025 -> 'viernes, 28 de noviembre de 2025'."""
    return f"{WEEKDAYS_ES[value.weekday()]}, {value.day} de {MONTHS_ES[value.month - 1]} de {value.year}"


def format_time_es(value: datetime) -> str:
    return value.strftime("%H:%M")


def format_timestamp(seconds: float) -> str:
    """Offset in seconds -> 'mm:ss' (minutes keep counting past the hour)."""
    total = int(max(seconds, 0))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"
