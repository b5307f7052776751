"""Punto de entrada de la calculadora RPN en la terminal."""

import argparse
import logging
import sys

from calculator_engine import CalculatorEngine, Indicator, Key


ANGLE_MODE = "rad"
FUNCTIONS = False

# Atajos de una sola tecla además de los nombres de Key
KEY_ALIASES = {
    ".": Key.POINT,
    "+": Key.PLUS,
    "-": Key.MINUS,
    "*": Key.MULTIPLY,
    "/": Key.DIVIDE,
}


def parse_key(name: str) -> Key:
    if name in KEY_ALIASES:
        return KEY_ALIASES[name]
    if name.isdigit() and len(name) == 1:
        return Key(int(name))
    try:
        return Key[name.upper()]
    except KeyError:
        raise ValueError(f"Tecla desconocida: {name}") from None


def format_indicators(indicators: dict) -> str:
    lines = [
        f"{indicator.name:<12} {indicators.get(indicator, '')}"
        for indicator in (
            Indicator.REGISTER_T,
            Indicator.REGISTER_Z,
            Indicator.REGISTER_Y,
            Indicator.REGISTER_X,
            Indicator.REGISTER_X1,
        )
    ]
    mantissa = indicators.get(Indicator.MANTISSA, "")
    exponent = indicators.get(Indicator.EXPONENT, "")
    lines.append(f"{'DISPLAY':<12} {mantissa} {exponent}".rstrip())
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Calculadora RPN")
    parser.add_argument("keys", nargs="*", help="teclas a pulsar, p. ej. 3 PUSH 4 PLUS")
    parser.add_argument("--deg", action="store_true", help="ángulos en grados")
    parser.add_argument("--functions", action="store_true", default=FUNCTIONS,
                        help="activa las funciones científicas de las capas F y K")
    parser.add_argument("-v", "--verbose", action="store_true", help="registro DEBUG")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    engine = CalculatorEngine(
        angle_mode="deg" if args.deg else ANGLE_MODE,
        functions=args.functions,
    )
    indicators = {}
    engine.subscribe_indicators(lambda indicator, value: indicators.__setitem__(indicator, value))

    def press_all(names):
        try:
            keys = [parse_key(name) for name in names]
        except ValueError as exc:
            parser.error(str(exc))
        for key in keys:
            engine.key_pressed(key)

    if args.keys:
        press_all(args.keys)
        print(format_indicators(indicators))
        return 0

    for line in sys.stdin:
        if not line.strip():
            continue
        press_all(line.split())
        print(format_indicators(indicators))
    return 0


if __name__ == "__main__":
    sys.exit(main())
