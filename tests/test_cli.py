import io
import logging

import numpy as np
import pytest

from ansi_mandelbrot import cli
from ansi_mandelbrot.errors import ArgumentError

CELL_16 = b"\x1b[48;5;16m \x1b[0m"


def run(*argv, stream=None):
    stream = io.BytesIO() if stream is None else stream
    code = cli.main([str(a) for a in argv], stream=stream)
    return code, stream


def test_two_by_one_interior_line():
    code, stream = run(2, 1, 1, 0, 0, 2, "--workers", 1)
    assert code == 0
    assert stream.getvalue() == CELL_16 + CELL_16 + b"\n"


def test_output_shape():
    width, height = 23, 11
    code, stream = run(width, height, 50, -0.5, 0, 1.5, "-w", 3)
    assert code == 0
    lines = stream.getvalue().split(b"\n")
    assert lines[-1] == b""
    assert len(lines[:-1]) == height
    for line in lines[:-1]:
        assert line.count(b"\x1b[48;5;") == width
        assert line.count(b"\x1b[0m") == width


def test_output_is_deterministic_across_workers():
    outputs = {run(40, 20, 80, -0.75, 0.1, 1.2, "--workers", w)[1].getvalue()
               for w in (0, 1, 2, 7)}
    assert len(outputs) == 1


def test_negative_center_is_positional():
    code, stream = run(4, 2, 10, -0.5, -0.25, 1.0, "-w", 1)
    assert code == 0
    assert stream.getvalue().count(b"\n") == 2


@pytest.mark.parametrize("argv", [
    (),
    (2, 1, 1, 0, 0),
    (2, 1, 1, 0, 0, 2, 9),
    ("x", 1, 1, 0, 0, 2),
    (2, 1, 1.5, 0, 0, 2),
    (2, 1, 1, "abc", 0, 2),
    (2, 1, 1, 0, 0, "nan"),
    (2, 1, 1, 0, 0, "inf"),
    (0, 1, 1, 0, 0, 2),
    (2, -1, 1, 0, 0, 2),
    (2, 1, 0, 0, 0, 2),
    (2, 1, 1, 0, 0, 0),
    (2, 1, 1, 0, 0, -2),
    (2, 1, 1, 0, 0, 2, "--workers", -1),
])
def test_argument_errors_exit_one_without_output(argv):
    code, stream = run(*argv)
    assert code == 1
    assert stream.getvalue() == b""


def test_non_positive_message(caplog):
    code, _ = run(2, 1, 1, 0, 0, 0)
    assert code == 1
    assert "Arguments must be positive." in caplog.text
    assert "Invalid argument(s)" not in caplog.text


def test_unparsable_value_message(caplog):
    code, _ = run(2, 1, 1, "abc", 0, 2)
    assert code == 1
    assert "Invalid argument(s)" in caplog.text


def test_allocation_failure(monkeypatch, caplog):
    def fail(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(np, "empty", fail)
    code, stream = run(4, 4, 10, 0, 0, 2, "-w", 1)
    assert code == 1
    assert stream.getvalue() == b""
    assert "Allocation failed." in caplog.text


def test_write_failure_stops_output():
    class FailSecondRow:
        def __init__(self):
            self.rows = []

        def write(self, data):
            if self.rows:
                return 0
            self.rows.append(bytes(data))
            return len(data)

    stream = FailSecondRow()
    code = cli.main(["3", "5", "10", "0", "0", "2", "-w", "2"], stream=stream)
    assert code == 1
    assert len(stream.rows) == 1


def test_workers_from_environment(monkeypatch):
    monkeypatch.setenv(cli.WORKERS_ENV, "3")
    assert cli.default_workers() == 3
    monkeypatch.delenv(cli.WORKERS_ENV)
    assert cli.default_workers() >= 1


@pytest.mark.parametrize("value", ["many", "-2"])
def test_bad_workers_environment(monkeypatch, value):
    monkeypatch.setenv(cli.WORKERS_ENV, value)
    with pytest.raises(ArgumentError):
        cli.default_workers()
    code, stream = run(2, 1, 1, 0, 0, 2)
    assert code == 1
    assert stream.getvalue() == b""


def test_verbose_logs_timings(caplog):
    caplog.set_level(logging.INFO)
    code, _ = run(4, 2, 10, 0, 0, 2, "-w", 1, "-v")
    assert code == 0
    assert "Computed 4x2 frame" in caplog.text
    assert "Wrote" in caplog.text


@pytest.mark.parametrize("center_x,decimal", [
    ("-1e-3", "-0.001"),
    ("-5E-1", "-0.5"),
    ("-1.5e0", "-1.5"),
])
def test_negative_exponent_reals(center_x, decimal):
    code, stream = run(6, 3, 20, center_x, "-2.5e-1", 1.5, "-w", 1)
    assert code == 0
    _, expected = run(6, 3, 20, decimal, "-0.25", 1.5, "-w", 1)
    assert stream.getvalue() == expected.getvalue()


def test_options_before_positionals():
    code, stream = run("-w", 2, "-v", 4, 2, 10, "-1e-3", "-5E-1", 1.0)
    assert code == 0
    assert stream.getvalue().count(b"\n") == 2


def test_split_argv_moves_positionals_behind_separator():
    argv = ["2", "-w", "3", "-1e-3", "--workers=1", "-v", "-5E-1"]
    assert cli.split_argv(argv) == [
        "-w", "3", "--workers=1", "-v", "--", "2", "-1e-3", "-5E-1",
    ]


def test_unallocatable_width(caplog):
    code, stream = run(10**20, 1, 1, 0, 0, 2, "-w", 1)
    assert code == 1
    assert stream.getvalue() == b""
    assert "Allocation failed." in caplog.text


def test_coordinate_table_allocation_failure(monkeypatch, caplog):
    def fail(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(np, "arange", fail)
    code, stream = run(4, 4, 10, 0, 0, 2, "-w", 1)
    assert code == 1
    assert stream.getvalue() == b""
    assert "Allocation failed." in caplog.text


def test_verbose_does_not_stick():
    package_logger = logging.getLogger("ansi_mandelbrot")
    assert run(2, 1, 1, 0, 0, 2, "-w", 1, "-v")[0] == 0
    assert package_logger.level == logging.INFO
    assert run(2, 1, 1, 0, 0, 2, "-w", 1)[0] == 0
    assert package_logger.level == logging.NOTSET
