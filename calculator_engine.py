"""
Motor de cálculo de la calculadora RPN.

Este módulo provee la clase CalculatorEngine: una máquina de estados con
una pila de registros decimales (X, Y, Z, T, X1 y X0), un buffer de edición
para el número que se teclea y dos capas de teclas con prefijo (F y K).
Es independiente de la interfaz gráfica, que solo conoce dos puntos:

Contrato de interfaz:
    - key_pressed(key: Key | int) -> None
    - subscribe_indicators(callback: (Indicator, str) -> None) -> None
    - angle_mode: propiedad 'rad' | 'deg'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum

from arbitrary_precision_engine import ArbitraryPrecisionArithmetic, Precision
from number_editor import NumberEditor


logger = logging.getLogger(__name__)


class Key(IntEnum):
    ZERO = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9

    POINT = 10
    SIGN = 11
    ENTER_E = 12

    PUSH = 20
    SWAP = 21
    CLEAR_X = 22
    BACK_X = 23

    PLUS = 30
    MINUS = 31
    MULTIPLY = 32
    DIVIDE = 33

    # Funciones de las capas F y K
    SQRT = 40
    RECIPROCAL = 41
    SQUARE = 42
    POWER = 43
    TEN_POW = 44
    EXP = 45
    LG = 46
    LN = 47
    PI = 48

    SINE = 50
    COSINE = 51
    TANGENT = 52
    ARCSINE = 53
    ARCCOSINE = 54
    ARCTANGENT = 55

    INTEGER_PART = 60
    FRACTION_PART = 61
    ABSOLUTE = 62

    CLEAR_F = 81
    NOP = 82

    F = 90
    K = 91


class Indicator(IntEnum):
    MANTISSA = 0
    EXPONENT = 1
    REGISTER_X = 2
    REGISTER_Y = 3
    REGISTER_Z = 4
    REGISTER_T = 5
    REGISTER_X1 = 6


class Mode(Enum):
    READY = "ready"
    RESULT = "result"
    INTEGER = "integer"
    FRACTION = "fraction"
    EXPONENT = "exponent"
    ERROR = "error"


class Layer(Enum):
    NONE = "none"
    F = "f"
    K = "k"


class Operation(Enum):
    PLUS = "plus"
    MINUS = "minus"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    POWER = "power"


# ── Acciones ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Digit:
    digit: str


@dataclass(frozen=True)
class Point:
    pass


@dataclass(frozen=True)
class EnterExponent:
    pass


@dataclass(frozen=True)
class Sign:
    pass


@dataclass(frozen=True)
class Push:
    pass


@dataclass(frozen=True)
class Swap:
    pass


@dataclass(frozen=True)
class BackX:
    pass


@dataclass(frozen=True)
class BinaryOp:
    op: Operation


@dataclass(frozen=True)
class UnaryFunction:
    name: str


@dataclass(frozen=True)
class Constant:
    name: str


@dataclass(frozen=True)
class ClearX:
    pass


@dataclass(frozen=True)
class ClearF:
    pass


@dataclass(frozen=True)
class Prefix:
    layer: Layer


@dataclass(frozen=True)
class Nop:
    pass


_DIGIT_KEYS = (
    Key.ZERO, Key.ONE, Key.TWO, Key.THREE, Key.FOUR,
    Key.FIVE, Key.SIX, Key.SEVEN, Key.EIGHT, Key.NINE,
)

# Funciones unarias: tecla -> nombre en el proveedor de mpmath
_UNARY_FUNCTIONS = {
    Key.SQRT: "sqrt",
    Key.RECIPROCAL: "reciprocal",
    Key.SQUARE: "square",
    Key.TEN_POW: "ten_pow",
    Key.EXP: "exp",
    Key.LG: "lg",
    Key.LN: "ln",
    Key.SINE: "sin",
    Key.COSINE: "cos",
    Key.TANGENT: "tan",
    Key.ARCSINE: "asin",
    Key.ARCCOSINE: "acos",
    Key.ARCTANGENT: "atan",
    Key.INTEGER_PART: "integer_part",
    Key.FRACTION_PART: "fraction_part",
    Key.ABSOLUTE: "absolute",
}

_FUNCTION_LAYER_F = {
    Key.SEVEN: Key.SINE,
    Key.EIGHT: Key.COSINE,
    Key.NINE: Key.TANGENT,
    Key.FOUR: Key.ARCSINE,
    Key.FIVE: Key.ARCCOSINE,
    Key.SIX: Key.ARCTANGENT,
    Key.ONE: Key.EXP,
    Key.TWO: Key.LG,
    Key.THREE: Key.LN,
    Key.ZERO: Key.TEN_POW,
    Key.MINUS: Key.SQRT,
    Key.DIVIDE: Key.RECIPROCAL,
    Key.MULTIPLY: Key.SQUARE,
    Key.PLUS: Key.PI,
    Key.SWAP: Key.POWER,
}

_FUNCTION_LAYER_K = {
    Key.SEVEN: Key.INTEGER_PART,
    Key.EIGHT: Key.FRACTION_PART,
    Key.FOUR: Key.ABSOLUTE,
}


class CalculatorEngine:
    """Calculadora RPN de pila de cuatro niveles con aritmética decimal."""

    def __init__(
        self,
        precision: Precision | None = None,
        angle_mode: str = "rad",
        functions: bool = False,
    ):
        self._precision = precision or Precision()
        self._arithmetic = ArbitraryPrecisionArithmetic(self._precision, angle_mode)
        self._indicators_callback = None

        zero = self._arithmetic.zero()
        self._x = zero
        self._y = zero
        self._z = zero
        self._t = zero
        self._x1 = zero  # X anterior
        self._x0 = zero  # X antes de la última operación

        self._actions = self._build_actions()
        self._translate_f, self._translate_k = self._build_layers(functions)

        self._number = NumberEditor(self._precision).load_from_decimal(
            self._arithmetic.value_of(self._x)
        )
        self._mode = Mode.READY
        self._layer = Layer.NONE

    # ── Propiedades ──────────────────────────────────────────────

    @property
    def angle_mode(self) -> str:
        return self._arithmetic.angle_mode

    @angle_mode.setter
    def angle_mode(self, mode: str):
        self._arithmetic.angle_mode = mode

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def layer(self) -> Layer:
        return self._layer

    # ── Contrato con la interfaz ─────────────────────────────────

    def subscribe_indicators(self, callback):
        """Registra el único receptor de indicadores y lo refresca."""
        self._indicators_callback = callback
        self._output()

    def key_pressed(self, key):
        if isinstance(key, bool) or not isinstance(key, int):
            logger.debug("Código de tecla no entero ignorado: %r", key)
            return
        try:
            key = Key(key)
        except ValueError:
            logger.debug("Tecla desconocida ignorada: %r", key)
            return

        if self._layer is Layer.F:
            key = self._translate_f.get(key)
        elif self._layer is Layer.K:
            key = self._translate_k.get(key)

        if key is None:
            logger.debug("Tecla sin función en la capa %s", self._layer.name)
            return

        action = self._actions.get(key)
        if action is None:
            logger.debug("Tecla %s sin acción", key.name)
            return

        self._layer = Layer.NONE
        logger.debug("%s -> %s (modo %s)", key.name, action, self._mode.name)
        self._dispatch(action)

    # ── Tablas ───────────────────────────────────────────────────

    def _build_actions(self) -> dict:
        actions = {key: Digit(str(int(key))) for key in _DIGIT_KEYS}
        actions.update({key: UnaryFunction(name) for key, name in _UNARY_FUNCTIONS.items()})
        actions.update({
            Key.POINT: Point(),
            Key.ENTER_E: EnterExponent(),
            Key.SIGN: Sign(),
            Key.PUSH: Push(),
            Key.SWAP: Swap(),
            Key.BACK_X: BackX(),
            Key.PLUS: BinaryOp(Operation.PLUS),
            Key.MINUS: BinaryOp(Operation.MINUS),
            Key.MULTIPLY: BinaryOp(Operation.MULTIPLY),
            Key.DIVIDE: BinaryOp(Operation.DIVIDE),
            Key.POWER: BinaryOp(Operation.POWER),
            Key.PI: Constant("pi"),
            Key.CLEAR_X: ClearX(),
            Key.CLEAR_F: ClearF(),
            Key.F: Prefix(Layer.F),
            Key.K: Prefix(Layer.K),
            Key.NOP: Nop(),
        })
        return actions

    @staticmethod
    def _build_layers(functions: bool) -> tuple[dict, dict]:
        translate_f = {
            Key.PUSH: Key.BACK_X,
            Key.CLEAR_X: Key.CLEAR_F,
        }
        translate_k = {
            Key.ZERO: Key.NOP,
        }
        if functions:
            translate_f.update(_FUNCTION_LAYER_F)
            translate_k.update(_FUNCTION_LAYER_K)
        return translate_f, translate_k

    def _dispatch(self, action):
        match action:
            case Digit(digit=digit):
                self._set_digit(digit)
            case Point():
                self._set_point()
            case EnterExponent():
                self._set_enter_e()
            case Sign():
                self._do_negate()
            case Push():
                self._do_push()
                self._output()
            case Swap():
                self._do_swap()
            case BackX():
                self._do_back_x()
            case BinaryOp(op=op):
                self._do_binary(op)
            case UnaryFunction(name=name):
                self._do_unary(name)
            case Constant(name=name):
                self._do_constant(name)
            case ClearX():
                self._do_clear_x()
            case ClearF() | Nop():
                self._set_mode(Mode.READY)
            case Prefix(layer=layer):
                self._set_prefix(layer)

    # ── Estado ───────────────────────────────────────────────────

    def _mode_is(self, mode: Mode, force: bool = False):
        # ERROR solo se abandona con CLEAR_F, NOP, F o K
        if self._mode is Mode.ERROR and not force:
            return
        self._mode = mode

    def _fail(self, reason: str):
        logger.debug("ERROR: %s", reason)
        self._mode = Mode.ERROR

    def _display(self):
        callback = self._indicators_callback
        if callback is None:
            return

        to_string = self._arithmetic.to_string
        callback(Indicator.REGISTER_X, to_string(self._x))
        callback(Indicator.REGISTER_Y, to_string(self._y))
        callback(Indicator.REGISTER_Z, to_string(self._z))
        callback(Indicator.REGISTER_T, to_string(self._t))
        callback(Indicator.REGISTER_X1, to_string(self._x1))

        if self._mode is Mode.ERROR:
            callback(Indicator.MANTISSA, "ERROR")
            callback(Indicator.EXPONENT, "")
        else:
            callback(Indicator.MANTISSA, self._number.mantissa_text())
            callback(Indicator.EXPONENT, self._number.exponent_text())

    def _input(self):
        """Confirma el buffer de edición en X y refresca."""
        try:
            self._x = self._arithmetic.parse(self._number.to_decimal_literal())
        except ValueError as exc:
            self._fail(str(exc))
        self._display()

    def _output(self):
        """Carga el buffer de edición desde X y refresca."""
        self._number.load_from_decimal(self._arithmetic.value_of(self._x))
        self._display()

    def _recover(self):
        """Confirma el buffer; si no es representable lo recarga desde X."""
        try:
            self._x = self._arithmetic.parse(self._number.to_decimal_literal())
        except ValueError as exc:
            logger.debug("Buffer descartado: %s", exc)
            self._number.load_from_decimal(self._arithmetic.value_of(self._x))
        self._display()

    def _set_mode(self, mode: Mode):
        self._mode_is(mode, force=True)
        self._recover()

    def _set_prefix(self, layer: Layer):
        # el estado de entrada se conserva salvo ERROR, que vuelve a READY
        if self._mode is Mode.ERROR:
            self._mode_is(Mode.READY, force=True)
        self._recover()
        self._layer = layer

    # ── Entrada de números ───────────────────────────────────────

    def _set_point(self):
        if self._mode is Mode.EXPONENT:
            self._fail("punto decimal en el exponente")
        elif self._number.has_integer_part():
            self._mode_is(Mode.FRACTION)
        self._input()

    def _set_digit(self, digit: str):
        if self._mode is Mode.EXPONENT:
            self._set_exponent_digit(digit)
            return

        if self._mode is Mode.RESULT:
            self._do_push()
        if self._mode is Mode.READY:
            self._number.reset()
            self._mode_is(Mode.INTEGER)

        if not self._number.is_mantissa_full():
            if self._mode is Mode.INTEGER:
                self._number.append_integer_digit(digit)
            elif self._mode is Mode.FRACTION:
                self._number.append_fraction_digit(digit)
        self._input()

    def _set_exponent_digit(self, digit: str):
        self._number.append_exponent_digit(digit)
        base = NumberEditor(self._precision).load_from_decimal(
            self._arithmetic.value_of(self._x0)
        )
        exponent = int(self._number.exponent_text()) + int(base.exponent_text() or "0")

        if not self._precision.min_exponent <= exponent <= self._precision.max_exponent:
            self._fail(f"exponente {exponent} fuera de rango")
        else:
            base.set_exponent_text(str(exponent))
            try:
                self._x = self._arithmetic.parse(base.to_decimal_literal())
            except ValueError as exc:
                self._fail(str(exc))
        self._display()

    def _set_enter_e(self):
        if self._arithmetic.is_zero(self._x):
            self._number.force_leading_digit_to_one()
        self._number.pad_exponent_for_entry()
        self._mode_is(Mode.EXPONENT)
        self._input()
        self._x0 = self._x

    def _do_negate(self):
        if self._mode is Mode.EXPONENT:
            self._number.negate_exponent_sign()
            self._input()
            return

        self._x1 = self._x
        self._x = self._arithmetic.negate(self._x)
        self._mode_is(Mode.READY)
        self._output()

    # ── Operaciones de pila ──────────────────────────────────────

    def _do_push(self):
        self._x0 = self._x
        self._t = self._z
        self._z = self._y
        self._y = self._x
        self._mode_is(Mode.READY)

    def _do_swap(self):
        self._x0 = self._x
        self._x1 = self._x
        self._x = self._y
        self._y = self._x1
        self._mode_is(Mode.RESULT)
        self._output()

    def _do_back_x(self):
        self._x0 = self._x
        self._t = self._z
        self._z = self._y
        self._y = self._x
        self._x = self._x1
        self._mode_is(Mode.RESULT)
        self._output()

    def _do_clear_x(self):
        self._x0 = self._x
        self._x = self._arithmetic.zero()
        self._mode_is(Mode.READY)
        self._output()

    # ── Operaciones aritméticas ──────────────────────────────────

    def _do_binary(self, op: Operation):
        self._x0 = self._x
        self._x1 = self._x

        if op is Operation.DIVIDE and self._arithmetic.is_zero(self._x):
            self._fail("división por cero")
        else:
            try:
                self._x = self._compute(op, self._y, self._x)
            except ValueError as exc:
                self._fail(str(exc))
            else:
                self._mode_is(Mode.RESULT)

        if self._mode is Mode.RESULT:
            self._y = self._z
            self._z = self._t
            # T se conserva
        self._output()

    def _compute(self, op: Operation, y, x):
        arithmetic = self._arithmetic
        if op is Operation.PLUS:
            return arithmetic.add(y, x)
        if op is Operation.MINUS:
            return arithmetic.subtract(y, x)
        if op is Operation.MULTIPLY:
            return arithmetic.multiply(y, x)
        if op is Operation.DIVIDE:
            return arithmetic.divide(y, x)
        # xʸ: X elevado a Y
        return arithmetic.apply("power", x, y)

    def _do_unary(self, name: str):
        self._x0 = self._x
        self._x1 = self._x

        arithmetic = self._arithmetic
        try:
            if name == "integer_part":
                self._x = arithmetic.integer_part(self._x)
            elif name == "fraction_part":
                self._x = arithmetic.fraction_part(self._x)
            elif name == "absolute":
                self._x = arithmetic.absolute(self._x)
            else:
                self._x = arithmetic.apply(name, self._x)
        except ValueError as exc:
            self._fail(str(exc))
        else:
            self._mode_is(Mode.RESULT)
        self._output()

    def _do_constant(self, name: str):
        if self._mode is Mode.RESULT:
            self._do_push()
        self._x0 = self._x
        self._x = self._arithmetic.constant(name)
        self._mode_is(Mode.RESULT)
        self._output()
