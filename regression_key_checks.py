from calculator_engine import CalculatorEngine, Indicator
from main import format_indicators, parse_key
import sys


class _Recorder:
	def __init__(self):
		self.values = {}
		self.refreshes = 0

	def __call__(self, indicator, value):
		if indicator == Indicator.REGISTER_X:
			self.refreshes += 1
		self.values[indicator] = value


def _replay(sequence: str, **engine_options):
	engine = CalculatorEngine(**engine_options)
	recorder = _Recorder()
	engine.subscribe_indicators(recorder)
	states = []

	for name in sequence.split():
		engine.key_pressed(parse_key(name))
		states.append((name, dict(recorder.values)))

	return engine, recorder.values, states


def inspect_key_states(sequence: str, *, functions: bool = False, angle_mode: str = "rad") -> None:
	"""Imprime los indicadores después de cada tecla."""
	engine, values, states = _replay(sequence, functions=functions, angle_mode=angle_mode)

	print("Key inspection")
	print(f"keys:        {sequence}")
	print(f"final mode:  {engine.mode.name}")
	for name, state in states:
		print(f"\n[{name}]")
		print(format_indicators(state))


def run_regressions() -> None:
	checks: list[tuple[str, bool]] = []
	expected_actual: list[tuple[str, str, str]] = []

	_, values, _ = _replay("3 PUSH 4 PLUS")
	checks.append(("3 PUSH 4 PLUS gives 7", values[Indicator.REGISTER_X] == "7"))
	checks.append(("PLUS remembers X1", values[Indicator.REGISTER_X1] == "4"))

	engine, values, _ = _replay("1 0 PUSH 0 DIVIDE")
	checks.append(("division by zero shows ERROR", values[Indicator.MANTISSA] == "ERROR"))
	checks.append(("division by zero keeps Y", values[Indicator.REGISTER_Y] == "10"))
	engine.key_pressed(parse_key("CLEAR_F"))
	checks.append(("CLEAR_F leaves ERROR", engine.mode.name == "READY"))

	_, values, _ = _replay("ENTER_E 5")
	expected_actual.append(("ENTER_E 5 display", "1. 05", f"{values[Indicator.MANTISSA]} {values[Indicator.EXPONENT]}"))
	checks.append(("ENTER_E on zero starts from 1", values[Indicator.MANTISSA] == "1."))
	checks.append(("exponent preview updates X", values[Indicator.REGISTER_X] == "100000"))

	_, values, _ = _replay("9 9 9 9 9 9 9 9 PUSH 1 PLUS")
	expected_actual.append(("99999999 + 1", "1e+8", values[Indicator.REGISTER_X]))
	checks.append(("carry past precision switches to exponent", values[Indicator.EXPONENT] == "08"))

	_, values, _ = _replay("2 PUSH 3 DIVIDE")
	expected_actual.append(("2 / 3 rounds half up", "6.6666667e-1", values[Indicator.REGISTER_X]))
	checks.append(("2 / 3 mantissa", values[Indicator.MANTISSA] == "6.6666667"))
	checks.append(("2 / 3 exponent", values[Indicator.EXPONENT] == "-01"))

	_, values, _ = _replay("2 PUSH 3 PLUS F PUSH")
	checks.append(("F PUSH recalls previous X", values[Indicator.REGISTER_X] == "3"))
	checks.append(("F PUSH lifts the result", values[Indicator.REGISTER_Y] == "5"))

	_, values, _ = _replay("1 2 3 4 5 6 7 8 9")
	expected_actual.append(("mantissa stops at 8 digits", "12345678.", values[Indicator.MANTISSA]))

	engine, values, _ = _replay("1 2 3 4 5 6 7 8 ENTER_E 9 9")
	checks.append(("exponent overflow is ERROR", values[Indicator.MANTISSA] == "ERROR"))

	_, values, _ = _replay("2 F MINUS", functions=True)
	expected_actual.append(("sqrt(2)", "1.4142136", values[Indicator.REGISTER_X]))

	_, values, _ = _replay("3 0 F 7", functions=True, angle_mode="deg")
	expected_actual.append(("sin(30 deg)", "5e-1", values[Indicator.REGISTER_X]))

	for label, expected, actual in expected_actual:
		checks.append((label, expected == actual))

	failed = [name for name, ok in checks if not ok]
	for name, ok in checks:
		print(f"{name}: {'OK' if ok else 'FAIL'}")

	print("\nExpected vs Actual:")
	for label, expected, actual in expected_actual:
		status = "OK" if expected == actual else "FAIL"
		print(f"- {label}: {status}")
		print(f"  expected: {expected}")
		print(f"  actual:   {actual}")

	if failed:
		print("\nFAILED CHECKS:")
		for name in failed:
			print(f"- {name}")
		raise SystemExit(1)

	print("\nAll regression checks passed.")


if __name__ == "__main__":
	# Uso rápido:
	#   python regression_key_checks.py
	#   python regression_key_checks.py --inspect "3 PUSH 4 PLUS"
	#   python regression_key_checks.py --inspect "3 0 F 7" --functions --deg
	if "--inspect" in sys.argv:
		try:
			keys = sys.argv[sys.argv.index("--inspect") + 1]
		except (ValueError, IndexError):
			raise SystemExit("Missing key sequence after --inspect")

		inspect_key_states(
			keys,
			functions="--functions" in sys.argv,
			angle_mode="deg" if "--deg" in sys.argv else "rad",
		)
	else:
		run_regressions()
