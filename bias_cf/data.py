from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, TextIO, Tuple

import numpy as np
import pandas as pd

from .errors import InputError, ParseError, SchemaError


TRAIN_MARKER = "train dataset"
TEST_MARKER = "test dataset"
ID_MIN = int(np.iinfo(np.int64).min)
ID_MAX = int(np.iinfo(np.int64).max)


@dataclass(frozen=True)
class RatingsInput:
    train: pd.DataFrame
    test: pd.DataFrame

    @property
    def test_has_ratings(self) -> bool:
        return "rating" in self.test.columns


REQUIRED_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "train": ("userId", "itemId", "rating"),
    "test": ("userId", "itemId"),
}


def _parse_id(token: str, what: str, line_no: int, line: str) -> int:
    try:
        value = int(token)
    except ValueError:
        raise ParseError(f"{what} must be an integer", line_no=line_no, line=line) from None
    if not ID_MIN <= value <= ID_MAX:
        raise ParseError(f"{what} out of int64 range", line_no=line_no, line=line)
    return value


def _parse_rating(token: str, line_no: int, line: str) -> float:
    try:
        value = float(token)
    except ValueError:
        raise ParseError("rating must be a number", line_no=line_no, line=line) from None
    if not math.isfinite(value):
        raise ParseError("rating must be finite", line_no=line_no, line=line)
    return value


def read_sections(lines: Iterable[str]) -> RatingsInput:
    """Split the two-section text input into train and test frames.

    Layout::

        train dataset
        <userId> <itemId> <rating>
        ...
        test dataset
        <userId> <itemId> [<rating>]
        ...

    Blank lines are ignored in both sections. Test records may carry the true
    rating as a third column, but then every test record must.
    """
    train_rows: List[Tuple[int, int, float]] = []
    test_rows: List[Tuple[int, ...]] = []
    test_width: int | None = None
    section: str | None = None

    for line_no, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        if line == TRAIN_MARKER:
            if section is not None:
                raise SchemaError(f"line {line_no}: unexpected {TRAIN_MARKER!r} marker in {section} section")
            section = "train"
            continue
        if line == TEST_MARKER:
            if section is None:
                raise SchemaError(f"line {line_no}: {TEST_MARKER!r} marker before {TRAIN_MARKER!r}")
            if section == "test":
                raise SchemaError(f"line {line_no}: duplicate {TEST_MARKER!r} marker")
            section = "test"
            continue

        if section is None:
            raise SchemaError(f"line {line_no}: record found before the {TRAIN_MARKER!r} marker")

        tokens = line.split()
        if section == "train":
            if len(tokens) != 3:
                raise ParseError("expected `<userId> <itemId> <rating>`", line_no=line_no, line=line)
            train_rows.append(
                (
                    _parse_id(tokens[0], "userId", line_no, line),
                    _parse_id(tokens[1], "itemId", line_no, line),
                    _parse_rating(tokens[2], line_no, line),
                )
            )
            continue

        if len(tokens) not in (2, 3):
            raise ParseError("expected `<userId> <itemId>`", line_no=line_no, line=line)
        if test_width is None:
            test_width = len(tokens)
        elif len(tokens) != test_width:
            raise ParseError(
                f"test records must all have {test_width} columns", line_no=line_no, line=line
            )
        row: Tuple[int, ...] = (
            _parse_id(tokens[0], "userId", line_no, line),
            _parse_id(tokens[1], "itemId", line_no, line),
        )
        if len(tokens) == 3:
            row = row + (_parse_rating(tokens[2], line_no, line),)
        test_rows.append(row)

    if section is None:
        raise SchemaError(f"missing {TRAIN_MARKER!r} marker")
    if section != "test":
        raise SchemaError(f"missing {TEST_MARKER!r} marker")

    train = _frame(train_rows, with_rating=True)
    test = _frame(test_rows, with_rating=(test_width == 3))
    data = RatingsInput(train=train, test=test)
    validate_schema(data)
    return data


def _frame(rows: List[Tuple], *, with_rating: bool) -> pd.DataFrame:
    cols = {
        "userId": np.array([r[0] for r in rows], dtype=np.int64),
        "itemId": np.array([r[1] for r in rows], dtype=np.int64),
    }
    if with_rating:
        cols["rating"] = np.array([r[2] for r in rows], dtype=np.float64)
    return pd.DataFrame(cols)


def load_input(source: Path | TextIO) -> RatingsInput:
    """Read sections from a path or an already-open text stream."""
    try:
        if isinstance(source, (str, Path)):
            with open(source, encoding="utf-8") as fh:
                return read_sections(fh)
        return read_sections(source)
    except UnicodeDecodeError as exc:
        raise ParseError(f"input is not valid UTF-8: {exc.reason} at byte {exc.start}") from exc
    except OSError as exc:
        raise InputError(f"Could not read input {source}: {exc.strerror or exc}") from exc


def validate_schema(data: RatingsInput) -> None:
    """Validate that all required columns exist and basic constraints hold."""
    for name, cols in REQUIRED_COLUMNS.items():
        df = getattr(data, name)
        missing = [c for c in cols if c not in df.columns]
        if missing:
            raise SchemaError(f"{name} records missing columns: {missing}")
        for c in ("userId", "itemId"):
            if not pd.api.types.is_integer_dtype(df[c]):
                raise SchemaError(f"{name}.{c} must be integer, got {df[c].dtype}")

    for name in ("train", "test"):
        df = getattr(data, name)
        if "rating" in df.columns and not np.isfinite(df["rating"].to_numpy(np.float64)).all():
            raise SchemaError(f"{name} records contain non-finite ratings")
