"""Batch rating prediction from a two-section text input.

Reads ``train dataset`` / ``test dataset`` sections (stdin by default), fits
the bias-aware user-user CF model on the training records and prints one
prediction per test record, in input order. The elapsed wall-clock time is
reported on stderr once all predictions are written.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from ..config import ModelConfig, load_config
from ..data import load_input
from ..errors import BiasCFError
from ..metrics import rating_metrics
from ..utils import Stopwatch, setup_logging
from .recommender import BiasAwareUserCF
from .store import RatingStore


logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Bias-aware user-user CF rating prediction")
    p.add_argument("--input", type=Path, default=None, help="Input file; default stdin")
    p.add_argument("--config", type=Path, default=None, help="YAML config with a `bias_cf` section")
    p.add_argument("--k", type=int, default=None, help="Override neighbors kept per user")
    p.add_argument("--shrink", type=float, default=None, help="Override significance shrinkage")
    p.add_argument("--amp-factor", type=float, default=None, help="Override case amplification exponent")
    p.add_argument("--num-iters", type=int, default=None, help="Override bias refinement passes")
    p.add_argument("--alpha", type=float, default=None, help="Override bias learning rate")
    p.add_argument("--reg", type=float, default=None, help="Override bias regularization")
    p.add_argument("--log-level", type=str, default="WARNING", help="Logging level (default WARNING)")
    return p


def resolve_config(args: argparse.Namespace) -> ModelConfig:
    cfg = load_config(args.config) if args.config is not None else ModelConfig()
    return cfg.with_overrides(
        k=args.k,
        shrink=args.shrink,
        amp_factor=args.amp_factor,
        num_iters=args.num_iters,
        alpha=args.alpha,
        reg=args.reg,
    )


def format_prediction(value: float) -> str:
    return format(value, ".6g")


def run(args: argparse.Namespace, *, stdin: TextIO, stdout: TextIO) -> None:
    cfg = resolve_config(args)
    data = load_input(args.input if args.input is not None else stdin)

    store = RatingStore.from_frame(data.train)
    model = BiasAwareUserCF(cfg).fit(store)

    test = data.test
    preds = model.predict_batch(test["userId"].to_numpy(), test["itemId"].to_numpy())
    for value in preds:
        stdout.write(format_prediction(float(value)) + "\n")
    stdout.flush()

    if data.test_has_ratings and len(test):
        metrics = rating_metrics(test["rating"].to_numpy(), preds)
        logger.info("Test metrics: rmse=%.4f mae=%.4f n=%d", metrics["rmse"], metrics["mae"], len(test))


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)
    clock = Stopwatch()

    try:
        run(args, stdin=sys.stdin, stdout=sys.stdout)
    except BiasCFError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print(f"Time elapsed: {clock.elapsed():.3f} s", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
