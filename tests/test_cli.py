import json

import pytest

from reducebench import __main__ as cli
from reducebench.core.errors import AcceleratorOperationFailure, CompilationFailure, PlatformUnavailable


def test_parser_defaults():
	args = cli.reducebench_parser([])
	assert args.size == 10 * 1024 * 1024
	assert args.primitive == ["reduce", "scan-inclusive"]
	assert args.tolerance_factor == 1.0
	assert args.output_file is None


@pytest.mark.parametrize("argv", [["-s", "0"], ["-o", "results.xml"], ["-p", "scan-exclusive"], ["-t", "-1"]])
def test_parser_rejects(argv):
	with pytest.raises(SystemExit):
		cli.reducebench_parser(argv)


def test_scan_only_run_needs_no_device(capsys, monkeypatch):
	def no_device(*args, **kwargs):
		raise AssertionError("scan-inclusive must not create an OpenCL context")

	monkeypatch.setattr("reducebench.core.context.ExecutionContext.create", no_device)
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-p", "scan-inclusive", "-s", "1024"])
	assert excinfo.value.code == 0
	out = capsys.readouterr().out
	assert "function" in out and "scan-inclusive" in out


def test_reduce_run_writes_results(tmp_path, capsys, monkeypatch, fake_context):
	monkeypatch.setattr("reducebench.core.context.ExecutionContext.create", lambda *a, **k: fake_context)
	output = tmp_path / "results.json"
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-p", "reduce", "-s", "4096", "--seed", "1", "-o", str(output)])
	assert excinfo.value.code == 0
	assert "reduce" in capsys.readouterr().out
	data = json.loads(output.read_text())
	assert data[0]["function"] == "reduce"
	assert data[0]["validated"]


@pytest.mark.parametrize(
	"error",
	[
		PlatformUnavailable("Unable to find OpenCL platforms"),
		CompilationFailure({"fake device": "error: expected ')'"}),
		AcceleratorOperationFailure("clCreateBuffer", -4),
	],
)
def test_accelerator_errors_exit_one(monkeypatch, error):
	def fail(*args, **kwargs):
		raise error

	monkeypatch.setattr("reducebench.core.context.ExecutionContext.create", fail)
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-p", "reduce", "-s", "1024"])
	assert excinfo.value.code == 1


def test_uneven_size_exits_one(monkeypatch, fake_context):
	monkeypatch.setattr("reducebench.core.context.ExecutionContext.create", lambda *a, **k: fake_context)
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-p", "reduce", "-s", "1000"])
	assert excinfo.value.code == 1


def test_invalid_platform_env_exits_one(monkeypatch):
	monkeypatch.setenv("REDUCEBENCH_PLATFORM", "first")
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-p", "reduce", "-s", "1024"])
	assert excinfo.value.code == 1
