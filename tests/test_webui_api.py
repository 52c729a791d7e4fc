from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from sateko.codegen import LLVMCodeGenerator
from sateko.webui import create_app


class WebUICompileApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(create_app())

    def test_compile_returns_ir(self) -> None:
        response = self.client.post("/api/compile", json={"code": "+[-]."})
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertEqual(payload["ir"], LLVMCodeGenerator().emit("+[-]."))
        self.assertEqual(payload["instruction_count"], 5)
        self.assertEqual(payload["loop_count"], 1)

    def test_compile_honours_options(self) -> None:
        response = self.client.post(
            "/api/compile",
            json={"code": ">,", "tape_length": 32, "eof_policy": "ERROR", "check_bounds": False},
        )
        self.assertEqual(response.status_code, 200, response.text)
        ir_text = response.json()["ir"]
        self.assertIn("[32 x i8]", ir_text)
        self.assertIn("input.exhausted", ir_text)
        self.assertNotIn("tape.fault", ir_text)

    def test_compile_rejects_unbalanced_loops(self) -> None:
        response = self.client.post("/api/compile", json={"code": "[["})
        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("Unclosed loop", response.json()["detail"])

    def test_compile_validates_tape_length(self) -> None:
        response = self.client.post("/api/compile", json={"code": "+", "tape_length": 0})
        self.assertEqual(response.status_code, 422, response.text)

    def test_compile_rejects_unknown_eof_policy(self) -> None:
        response = self.client.post("/api/compile", json={"code": ",", "eof_policy": "wrap"})
        self.assertEqual(response.status_code, 422, response.text)


class WebUIRunApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(create_app())

    def _run(self, code: str, **payload) -> dict:
        body = {"code": code}
        body.update(payload)
        response = self.client.post("/api/run", json=body)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_run_echoes_input(self) -> None:
        data = self._run(",[.,]", input="hello")
        self.assertEqual(data["output"], "hello")
        self.assertIsNone(data["error"])

    def test_run_reports_output_bytes_as_latin1(self) -> None:
        data = self._run("-.")
        self.assertEqual(data["output"], "\xff")

    def test_run_reports_final_pointer(self) -> None:
        data = self._run(">>+", tape_length=4)
        self.assertEqual(data["pointer"], 2)

    def test_tape_fault_returns_partial_output_and_error(self) -> None:
        data = self._run("+++.\n><<", tape_length=4)
        self.assertEqual(data["output"], "\x03")
        self.assertIn("beginning", data["error"])
        self.assertEqual(data["error_index"], 6)
        self.assertEqual(data["error_position"], "2:3")
        self.assertEqual(data["pointer"], 0)

    def test_error_eof_policy_reports_exhausted_input(self) -> None:
        data = self._run(",,", input="A", eof_policy="error")
        self.assertEqual(data["error_index"], 1)
        self.assertIn("no input left", data["error"])

    def test_unchanged_eof_policy_keeps_cell(self) -> None:
        data = self._run("+++,.", eof_policy="unchanged")
        self.assertEqual(data["output"], "\x03")

    def test_step_limit_conflict(self) -> None:
        response = self.client.post("/api/run", json={"code": "+[]", "max_steps": 50})
        self.assertEqual(response.status_code, 409, response.text)
        self.assertIn("step count", response.json()["detail"])

    def test_run_rejects_unbalanced_loops(self) -> None:
        response = self.client.post("/api/run", json={"code": "]"})
        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("Unopened loop", response.json()["detail"])


if __name__ == "__main__":
    unittest.main()
