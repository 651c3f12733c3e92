from __future__ import annotations

import io

import pytest

from bias_cf.user_cf import cli


SMALL_INPUT = "train dataset\n1 1 5\n1 2 3\n2 1 4\n2 2 2\ntest dataset\n1 1\n"


def _run(monkeypatch: pytest.MonkeyPatch, text: str, argv: list[str]) -> int:
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO(text))
    return cli.main(argv)


def test_end_to_end_without_bias_or_neighbors(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, SMALL_INPUT, ["--num-iters", "0", "--k", "0"])

    out, err = capsys.readouterr()
    assert code == 0
    assert out == "3.5\n"
    assert err.strip().startswith("Time elapsed:")
    assert err.strip().endswith(" s")


def test_one_line_per_test_record_in_order(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    text = "train dataset\n1 1 5\n1 2 3\n2 1 4\n2 2 2\ntest dataset\n2 2\n\n9 9\n1 1\n"

    code = _run(monkeypatch, text, [])

    out, _ = capsys.readouterr()
    lines = out.splitlines()
    assert code == 0
    assert len(lines) == 3
    assert lines[1] == "3.5"
    assert all(float(x) > 0 for x in lines)


def test_schema_error_exits_non_zero(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, "train dataset\n1 1 5\n", [])

    out, err = capsys.readouterr()
    assert code == 2
    assert out == ""
    assert err.startswith("error:")
    assert "test dataset" in err


def test_parse_error_exits_non_zero(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, "train dataset\n1 x 5\ntest dataset\n", [])

    _, err = capsys.readouterr()
    assert code == 2
    assert "line 2" in err


def test_config_file_and_overrides(monkeypatch: pytest.MonkeyPatch, capsys, tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("bias_cf:\n  num_iters: 0\n  k: 5\n")

    code = _run(monkeypatch, SMALL_INPUT, ["--config", str(path), "--k", "0"])

    out, _ = capsys.readouterr()
    assert code == 0
    assert out == "3.5\n"


def test_invalid_override_exits_non_zero(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, SMALL_INPUT, ["--k", "-3"])

    _, err = capsys.readouterr()
    assert code == 2
    assert "k must be" in err


def test_input_file_with_true_ratings(capsys, tmp_path) -> None:
    path = tmp_path / "input.txt"
    path.write_text("train dataset\n1 1 5\n1 2 3\n2 1 4\n2 2 2\ntest dataset\n1 1 5\n2 2 2\n")

    code = cli.main(["--input", str(path), "--num-iters", "0", "--k", "0"])

    out, _ = capsys.readouterr()
    assert code == 0
    assert out.splitlines() == ["3.5", "3.5"]


def test_format_prediction() -> None:
    assert cli.format_prediction(3.5) == "3.5"
    assert cli.format_prediction(3.123456789) == "3.12346"
    assert cli.format_prediction(4.0) == "4"


def test_out_of_range_id_exits_non_zero(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, "train dataset\n99999999999999999999 1 5\ntest dataset\n", [])

    _, err = capsys.readouterr()
    assert code == 2
    assert "line 2" in err
    assert "range" in err


def test_invalid_utf8_input_exits_non_zero(capsys, tmp_path) -> None:
    path = tmp_path / "input.txt"
    path.write_bytes(b"train dataset\n1 1 5\n\xff\xfe 1 5\ntest dataset\n")

    code = cli.main(["--input", str(path)])

    out, err = capsys.readouterr()
    assert code == 2
    assert out == ""
    assert "UTF-8" in err


def test_missing_input_file_exits_non_zero(capsys, tmp_path) -> None:
    code = cli.main(["--input", str(tmp_path / "missing.txt")])

    _, err = capsys.readouterr()
    assert code == 2
    assert err.startswith("error:")
    assert "missing.txt" in err


def test_nan_override_exits_non_zero(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    code = _run(monkeypatch, SMALL_INPUT, ["--shrink", "nan"])

    _, err = capsys.readouterr()
    assert code == 2
    assert "finite" in err
