import json

import pytest
from typer.testing import CliRunner

from cairo_vm.cli import app


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def program_path(tmp_path, program_bytes):
    path = tmp_path / "program.json"
    path.write_bytes(program_bytes)
    return path


@pytest.fixture
def output_program_path(tmp_path, output_sw_program):
    path = tmp_path / "output.json"
    path.write_text(json.dumps(output_sw_program.Schema().dump(output_sw_program)))
    return path


class TestRun:
    def test_should_run_program(self, cli_runner, program_path):
        result = cli_runner.invoke(app, ["run", str(program_path)])
        assert result.exit_code == 0, result.output

    def test_should_print_output(self, cli_runner, output_program_path):
        result = cli_runner.invoke(
            app, ["run", str(output_program_path), "--print-output"]
        )
        assert result.exit_code == 0, result.output
        assert "Program output:\n1\n17\n" in result.output

    def test_should_write_trace_and_memory(self, cli_runner, program_path, tmp_path):
        trace_file = tmp_path / "program.trace"
        memory_file = tmp_path / "program.memory"
        result = cli_runner.invoke(
            app,
            [
                "run",
                str(program_path),
                "--trace-file",
                str(trace_file),
                "--memory-file",
                str(memory_file),
            ],
        )
        assert result.exit_code == 0, result.output
        trace = trace_file.read_bytes()
        memory = memory_file.read_bytes()
        assert len(trace) > 0 and len(trace) % 24 == 0
        assert len(memory) > 0 and len(memory) % 40 == 0
        # First memory cell is the first program word at address 1
        assert int.from_bytes(memory[:8], "little") == 1

    def test_should_run_cairo_source(self, cli_runner, tmp_path, cairo_content):
        path = tmp_path / "program.cairo"
        path.write_text(cairo_content)
        result = cli_runner.invoke(app, ["run", str(path), "--entrypoint", "get_values"])
        assert result.exit_code == 0, result.output

    def test_should_fail_on_unknown_entrypoint(self, cli_runner, program_path):
        result = cli_runner.invoke(
            app, ["run", str(program_path), "--entrypoint", "no_name"]
        )
        assert result.exit_code == 1
        assert "Entrypoint no_name not found" in result.output

    def test_should_fail_on_unsupported_prime(
        self, cli_runner, program_bytes, tmp_path
    ):
        compiled = json.loads(program_bytes)
        compiled["prime"] = hex(2**64 - 2**32 + 1)
        path = tmp_path / "goldilocks.json"
        path.write_text(json.dumps(compiled))
        result = cli_runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1
        assert "Unsupported prime" in result.output

    def test_should_fail_on_max_steps(self, cli_runner, program_path):
        result = cli_runner.invoke(app, ["run", str(program_path), "--max-steps", "1"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_should_fail_on_unknown_layout(self, cli_runner, program_path):
        result = cli_runner.invoke(
            app, ["run", str(program_path), "--layout", "no_layout"]
        )
        assert result.exit_code == 1


class TestProfile:
    def test_should_print_frames(self, cli_runner, program_path):
        result = cli_runner.invoke(app, ["profile", str(program_path)])
        assert result.exit_code == 0, result.output
        assert "program.json" in result.output
