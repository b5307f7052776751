"""Buffer de edición del número que se teclea dígito a dígito.

El número se guarda como texto (signo, parte entera, parte fraccionaria,
signo y dígitos del exponente) para poder mostrar tal cual lo que el
usuario va escribiendo antes de convertirlo a ``Decimal``.
"""

from __future__ import annotations

import re
from decimal import Decimal

from arbitrary_precision_engine import Precision, format_decimal


class NumberEditor:
    """Representación textual editable de un número decimal."""

    _EXPONENT_RE = re.compile(r"(?P<sign>[+-])?(?P<digits>\d+)")
    _CANONICAL_RE = re.compile(
        r"^(?P<sign>[+-])?(?P<int>\d+)(?:\.(?P<frac>\d+))?"
        r"(?:[eE](?P<exp_sign>[+-])?(?P<exp>\d+))?$"
    )

    def __init__(self, precision: Precision | None = None):
        self._precision = precision or Precision()
        self.reset()

    # ── Texto para los indicadores ───────────────────────────────

    def mantissa_text(self) -> str:
        integer = self._integer or "0"
        return f"{self._mantissa_sign}{integer}.{self._fraction}"

    def exponent_text(self) -> str:
        return f"{self._exponent_sign}{self._exponent}"

    def set_exponent_text(self, text: str):
        match = self._EXPONENT_RE.search(text)
        width = self._precision.exponent_digits
        if match is None:
            self._exponent_sign = ""
            self._exponent = "0" * width
            return
        self._exponent_sign = "-" if match.group("sign") == "-" else ""
        self._exponent = match.group("digits").rjust(width, "0")

    # ── Conversión ───────────────────────────────────────────────

    def load_from_decimal(self, value: Decimal | str) -> "NumberEditor":
        self.reset()
        if not isinstance(value, str):
            value = format_decimal(value, self._precision, keep_negative_zero=True)

        match = self._CANONICAL_RE.fullmatch(value)
        if match is None:
            raise ValueError(f"Número no reconocido: {value!r}")

        self._mantissa_sign = "-" if match.group("sign") == "-" else ""
        self._integer = match.group("int")
        self._fraction = match.group("frac") or ""
        self._exponent_sign = "-" if match.group("exp_sign") == "-" else ""
        exponent = match.group("exp")
        self._exponent = exponent.rjust(self._precision.exponent_digits, "0") if exponent else ""
        return self

    def to_decimal_literal(self) -> str:
        integer = self._integer or "0"
        fraction = f".{self._fraction}" if self._fraction else ""
        exponent = f"e{self._exponent_sign}{self._exponent}" if self._exponent else ""
        return f"{self._mantissa_sign}{integer}{fraction}{exponent}"

    # ── Edición ──────────────────────────────────────────────────

    def reset(self):
        self._mantissa_sign = ""
        self._integer = ""
        self._fraction = ""
        self._exponent_sign = ""
        self._exponent = ""

    def pad_exponent_for_entry(self):
        self._exponent_sign = ""
        self._exponent = "0" * self._precision.exponent_digits

    def force_leading_digit_to_one(self):
        """Una mantisa nula pasa a ser ``1`` al empezar a teclear el exponente."""
        self._integer = f"1{self._integer[1:]}"
        self._fraction = ""

    def has_integer_part(self) -> bool:
        return len(self._integer) != 0

    def is_mantissa_full(self) -> bool:
        return len(self._integer) + len(self._fraction) >= self._precision.digits

    def append_integer_digit(self, digit: str):
        self._integer += str(digit)

    def append_fraction_digit(self, digit: str):
        self._fraction += str(digit)

    def append_exponent_digit(self, digit: str):
        # registro de desplazamiento de ancho fijo
        self._exponent = self._exponent[1:] + str(digit)

    def negate_exponent_sign(self):
        self._exponent_sign = "" if self._exponent_sign == "-" else "-"
