import io
import unittest

from sateko import BrainfuckInterpreter, EOFPolicy, parse
from sateko.bf_interpreter import (
    ExecutionError,
    InputExhausted,
    StepLimitExceeded,
    TapeBoundsExceeded,
)


class BrainfuckInterpreterTests(unittest.TestCase):
    def test_simple_output(self) -> None:
        interpreter = BrainfuckInterpreter()
        program = "+" * 65 + "."
        output = interpreter.run(program, max_steps=1000)
        self.assertEqual(output, b"A")

    def test_increment_then_write(self) -> None:
        interpreter = BrainfuckInterpreter()
        output = interpreter.run(parse("+++."))
        self.assertEqual(interpreter.tape[0], 3)
        self.assertEqual(output, bytes([3]))

    def test_clear_loop_runs_once_per_unit(self) -> None:
        interpreter = BrainfuckInterpreter()
        # 5 increments, then 5 passes of "[-]" plus the final failing check.
        interpreter.run("+++++[-]", max_steps=5 + 5 * 3 + 1)
        self.assertEqual(interpreter.tape[0], 0)
        with self.assertRaises(StepLimitExceeded):
            interpreter.run("+++++[-]", max_steps=5 + 5 * 3)

    def test_loop_moves_value(self) -> None:
        interpreter = BrainfuckInterpreter(tape_length=2)
        interpreter.run("+" * 21 + "[>++<-]")
        self.assertEqual(interpreter.pointer, 0)
        self.assertEqual(interpreter.tape[0], 0)
        self.assertEqual(interpreter.tape[1], 42)

    def test_cells_wrap_modulo_256(self) -> None:
        interpreter = BrainfuckInterpreter(tape_length=1)
        interpreter.run("-")
        self.assertEqual(interpreter.tape[0], 255)
        interpreter.run("+" * 256)
        self.assertEqual(interpreter.tape[0], 0)
        interpreter.run("+" * 257)
        self.assertEqual(interpreter.tape[0], 1)

    def test_skips_loop_when_cell_is_zero(self) -> None:
        interpreter = BrainfuckInterpreter()
        self.assertEqual(interpreter.run("[.]+."), bytes([1]))

    def test_echo_round_trip(self) -> None:
        data = b"Hello, tape!\x00\xff"
        interpreter = BrainfuckInterpreter()
        self.assertEqual(interpreter.run(",." * len(data), input_data=data), data)

    def test_read_write_from_streams(self) -> None:
        interpreter = BrainfuckInterpreter()
        sink = io.BytesIO()
        output = interpreter.run(",.", input_data=io.BytesIO(b"\x41"), output=sink)
        self.assertEqual(sink.getvalue(), b"A")
        self.assertEqual(output, b"")

    def test_streamed_output_is_not_buffered(self) -> None:
        interpreter = BrainfuckInterpreter()
        sink = io.BytesIO()
        interpreter.run("+" * 65 + ".........", output=sink)
        self.assertEqual(sink.getvalue(), b"A" * 9)
        self.assertEqual(len(interpreter.output_buffer), 0)

    def test_string_input_is_utf8_encoded(self) -> None:
        interpreter = BrainfuckInterpreter()
        self.assertEqual(interpreter.run(",.,.", input_data="é"), "é".encode("utf-8"))

    def test_run_resets_between_programs(self) -> None:
        interpreter = BrainfuckInterpreter()
        interpreter.run("+++>")
        interpreter.run("")
        self.assertEqual(interpreter.pointer, 0)
        self.assertEqual(interpreter.tape[0], 0)

    def test_step_limit_exceeded(self) -> None:
        interpreter = BrainfuckInterpreter()
        with self.assertRaises(StepLimitExceeded):
            interpreter.run("+[]", max_steps=10)


class EOFPolicyTests(unittest.TestCase):
    def test_zero_policy_stores_zero(self) -> None:
        interpreter = BrainfuckInterpreter()
        interpreter.run("+++,")
        self.assertEqual(interpreter.tape[0], 0)

    def test_unchanged_policy_keeps_cell(self) -> None:
        interpreter = BrainfuckInterpreter(eof_policy=EOFPolicy.UNCHANGED)
        interpreter.run("+++,")
        self.assertEqual(interpreter.tape[0], 3)

    def test_error_policy_raises(self) -> None:
        interpreter = BrainfuckInterpreter(eof_policy="error")
        with self.assertRaises(InputExhausted) as ctx:
            interpreter.run("+,", input_data=b"")
        self.assertEqual(ctx.exception.index, 1)
        self.assertEqual(interpreter.tape[0], 1)

    def test_policy_accepts_strings(self) -> None:
        self.assertIs(BrainfuckInterpreter(eof_policy="unchanged").eof_policy, EOFPolicy.UNCHANGED)


class TapeBoundsTests(unittest.TestCase):
    def test_move_left_of_start(self) -> None:
        interpreter = BrainfuckInterpreter()
        with self.assertRaises(TapeBoundsExceeded) as ctx:
            interpreter.run("+<")
        self.assertEqual(ctx.exception.index, 1)
        self.assertIn("beginning", str(ctx.exception))
        self.assertEqual(interpreter.pointer, 0)
        self.assertEqual(interpreter.tape[0], 1)

    def test_move_past_end(self) -> None:
        interpreter = BrainfuckInterpreter(tape_length=3)
        interpreter.run(">>")
        self.assertEqual(interpreter.pointer, 2)
        with self.assertRaises(TapeBoundsExceeded) as ctx:
            interpreter.run(">>\n>")
        self.assertEqual(ctx.exception.index, 2)
        self.assertEqual(str(ctx.exception.position), "2:1")
        self.assertEqual(ctx.exception.tape_length, 3)
        self.assertEqual(interpreter.pointer, 2)

    def test_bounds_error_is_execution_error(self) -> None:
        self.assertTrue(issubclass(TapeBoundsExceeded, ExecutionError))
        self.assertTrue(issubclass(InputExhausted, ExecutionError))

    def test_tape_length_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            BrainfuckInterpreter(tape_length=0)


if __name__ == "__main__":
    unittest.main()
