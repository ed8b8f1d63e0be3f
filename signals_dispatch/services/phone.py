import re

MIN_DIGITS = 7
MAX_DIGITS = 15

_NON_DIGITS = re.compile(r"\D+")


def normalize_phone(value: str | None) -> str:
    """Normaliza para E.164 (``+`` seguido só de dígitos) ou devolve ``""``.

    Não infere DDI: qualquer sequência de 7 a 15 dígitos é aceita. Sem ``+``
    na entrada, um ``00`` inicial é tratado como prefixo de discagem
    internacional e removido.
    """
    if not value:
        return ""

    value = value.strip()
    has_plus = value.startswith("+")
    digits = _NON_DIGITS.sub("", value)

    if not MIN_DIGITS <= len(digits) <= MAX_DIGITS:
        return ""

    if not has_plus and digits.startswith("00"):
        digits = digits[2:]

    return f"+{digits}"


def is_valid_phone(value: str | None) -> bool:
    return normalize_phone(value) != ""
