"""Aritmética decimal de precisión fija para la calculadora RPN.

Los registros se guardan como ``decimal.Decimal`` redondeados a ``digits``
cifras significativas (ROUND_HALF_UP) dentro del rango de exponentes
configurado. Las funciones científicas se evalúan con mpmath a precisión
de trabajo mayor y se redondean después al contexto decimal.
"""

from __future__ import annotations

import decimal
import re
from dataclasses import dataclass
from decimal import Decimal

try:
    from mpmath import mp
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "mpmath no está instalado. Instala con: pip install mpmath"
    ) from exc


# Exponente a partir del cual (hacia abajo) se usa notación exponencial.
EXP_NEG_LIMIT = -1


@dataclass(frozen=True)
class Precision:
    """Constantes de precisión fijadas al construir la calculadora."""

    digits: int = 8
    exponent_digits: int = 2
    min_exponent: int = -99
    max_exponent: int = 99

    def __post_init__(self):
        if self.digits < 1:
            raise ValueError("La precisión debe tener al menos 1 dígito")
        if self.exponent_digits < 1:
            raise ValueError("El exponente debe tener al menos 1 dígito")
        if not self.min_exponent <= 0 <= self.max_exponent:
            raise ValueError("El rango de exponentes debe contener el 0")


def format_decimal(
    value: Decimal,
    precision: Precision,
    keep_negative_zero: bool = False,
) -> str:
    """Forma canónica ``[-]d[.ddd][e±N]`` sin ceros finales."""
    if not value.is_finite():
        raise ValueError("Valor no finito")

    sign, digits, exponent = value.as_tuple()
    negative = "-" if sign else ""
    coefficient = "".join(str(d) for d in digits).lstrip("0")
    if not coefficient:
        return f"{negative}0" if keep_negative_zero else "0"

    adjusted = exponent + len(coefficient) - 1
    stripped = coefficient.rstrip("0")

    if adjusted >= precision.digits or adjusted <= EXP_NEG_LIMIT:
        fraction = f".{stripped[1:]}" if len(stripped) > 1 else ""
        exp_sign = "+" if adjusted >= 0 else "-"
        return f"{negative}{stripped[0]}{fraction}e{exp_sign}{abs(adjusted)}"

    if adjusted < 0:
        return f"{negative}0.{'0' * (-adjusted - 1)}{stripped}"

    integer = stripped[: adjusted + 1].ljust(adjusted + 1, "0")
    fraction = stripped[adjusted + 1 :]
    return f"{negative}{integer}.{fraction}" if fraction else f"{negative}{integer}"


class MPMathProvider:
    """Proveedor de funciones científicas basado en mpmath."""

    def __init__(self, angle_mode: str = "rad"):
        self._angle_mode = "rad"
        self.angle_mode = angle_mode

    @property
    def angle_mode(self) -> str:
        return self._angle_mode

    @angle_mode.setter
    def angle_mode(self, mode: str):
        if mode not in ("rad", "deg"):
            raise ValueError("El modo debe ser 'rad' o 'deg'")
        self._angle_mode = mode

    def _to_radians(self, x):
        return mp.radians(x) if self._angle_mode == "deg" else x

    def _from_radians(self, x):
        return mp.degrees(x) if self._angle_mode == "deg" else x

    def build_namespace(self) -> dict:
        return {
            "sqrt": mp.sqrt,
            "reciprocal": lambda x: 1 / x,
            "square": lambda x: x * x,
            "sin": lambda x: mp.sin(self._to_radians(x)),
            "cos": lambda x: mp.cos(self._to_radians(x)),
            "tan": lambda x: mp.tan(self._to_radians(x)),
            "asin": lambda x: self._from_radians(mp.asin(x)),
            "acos": lambda x: self._from_radians(mp.acos(x)),
            "atan": lambda x: self._from_radians(mp.atan(x)),
            "exp": mp.exp,
            "lg": mp.log10,
            "ln": mp.log,
            "ten_pow": lambda x: mp.power(10, x),
            "power": mp.power,
            "pi": lambda: +mp.pi,
        }


class ArbitraryPrecisionArithmetic:
    """Operaciones sobre registros decimales con precisión y rango fijos.

    Todas las operaciones devuelven ``Decimal`` ya redondeados. Cualquier
    fallo (división por cero, desbordamiento, dominio) se informa con
    ``ValueError``.
    """

    _LITERAL_RE = re.compile(r"^[+-]?\d+(?:\.\d*)?(?:[eE][+-]?\d+)?$")

    def __init__(self, precision: Precision | None = None, angle_mode: str = "rad"):
        self._precision = precision or Precision()
        self._provider = MPMathProvider(angle_mode)
        self._context = decimal.Context(
            prec=self._precision.digits,
            rounding=decimal.ROUND_HALF_UP,
            Emin=self._precision.min_exponent,
            Emax=self._precision.max_exponent,
            traps=[decimal.Overflow, decimal.InvalidOperation, decimal.DivisionByZero],
        )
        self._working_dps = max(40, self._precision.digits * 2 + 10)

    @property
    def precision(self) -> Precision:
        return self._precision

    @property
    def angle_mode(self) -> str:
        return self._provider.angle_mode

    @angle_mode.setter
    def angle_mode(self, mode: str):
        self._provider.angle_mode = mode

    # ── Conversión ───────────────────────────────────────────────

    def parse(self, literal: str) -> Decimal:
        if not self._LITERAL_RE.fullmatch(literal):
            raise ValueError(f"Literal decimal inválido: {literal!r}")
        return self._checked(self._context.create_decimal, literal)

    def to_string(self, value: Decimal) -> str:
        return format_decimal(value, self._precision)

    def value_of(self, value: Decimal) -> str:
        return format_decimal(value, self._precision, keep_negative_zero=True)

    @staticmethod
    def zero() -> Decimal:
        return Decimal(0)

    @staticmethod
    def is_zero(value: Decimal) -> bool:
        return value.is_zero()

    @staticmethod
    def negate(value: Decimal) -> Decimal:
        return value.copy_negate()

    # ── Aritmética básica ────────────────────────────────────────

    def add(self, y: Decimal, x: Decimal) -> Decimal:
        return self._checked(self._context.add, y, x)

    def subtract(self, y: Decimal, x: Decimal) -> Decimal:
        return self._checked(self._context.subtract, y, x)

    def multiply(self, y: Decimal, x: Decimal) -> Decimal:
        return self._checked(self._context.multiply, y, x)

    def divide(self, y: Decimal, x: Decimal) -> Decimal:
        if x.is_zero():
            raise ValueError("División por cero")
        return self._checked(self._context.divide, y, x)

    def integer_part(self, x: Decimal) -> Decimal:
        return self._checked(x.to_integral_value, decimal.ROUND_DOWN, self._context)

    def fraction_part(self, x: Decimal) -> Decimal:
        return self.subtract(x, self.integer_part(x))

    def absolute(self, x: Decimal) -> Decimal:
        return x.copy_abs()

    # ── Funciones científicas ────────────────────────────────────

    def apply(self, name: str, *values: Decimal) -> Decimal:
        """Evalúa la función ``name`` de mpmath sobre los valores dados."""
        namespace = self._provider.build_namespace()
        if name not in namespace:
            raise ValueError(f"Función desconocida: {name}")

        with mp.workdps(self._working_dps):
            args = [mp.mpf(format_decimal(v, self._precision)) for v in values]
            try:
                result = namespace[name](*args)
            except ZeroDivisionError as exc:
                raise ValueError("División por cero") from exc

            if isinstance(result, mp.mpc):
                raise ValueError(f"{name}: resultado complejo")
            if not mp.isfinite(result):
                raise ValueError(f"{name}: resultado no finito")

            text = mp.nstr(result, n=self._working_dps)

        return self._checked(self._context.create_decimal, text)

    def constant(self, name: str) -> Decimal:
        return self.apply(name)

    def _checked(self, operation, *args) -> Decimal:
        try:
            result = operation(*args)
        except decimal.DecimalException as exc:
            raise ValueError(f"Error aritmético: {exc.__class__.__name__}") from exc

        if result and result.adjusted() < self._precision.min_exponent:
            return Decimal(0)
        return result
