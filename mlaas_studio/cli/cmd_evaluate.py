# cli/cmd_evaluate.py
from __future__ import annotations
import argparse
from numpy.random import default_rng
from ..training.evaluation import simulate_cross_validation, simulate_tuning
from .utils import parse_grid_args

DEFAULT_GRID = {"learningRate": [0.001, 0.01, 0.1], "batchSize": [16, 32]}


def _handle_cross_validate(args: argparse.Namespace) -> None:
    report = simulate_cross_validation(args.folds, rng=default_rng(args.seed))
    for f in report.folds:
        print(f"fold {f.fold}: train_acc={f.train_accuracy:.4f} val_acc={f.validation_accuracy:.4f} "
              f"train_loss={f.train_loss:.4f} val_loss={f.validation_loss:.4f}")
    print(f"mean train={report.avg_train_accuracy:.4f} "
          f"validation={report.avg_validation_accuracy:.4f} ± {report.std_validation_accuracy:.4f}")
    if report.overfitting:
        print("Warning: training accuracy exceeds validation accuracy by more than 0.1 (overfitting)")


def _handle_tune(args: argparse.Namespace) -> None:
    grid = parse_grid_args(args.grid) or DEFAULT_GRID
    report = simulate_tuning(grid, rng=default_rng(args.seed))
    for t in report.trials:
        print(f"trial {t.id}: {t.params} acc={t.accuracy:.4f} loss={t.loss:.4f} time={t.training_time:.1f}s")
    best = report.best
    if best is not None:
        print(f"Best: trial {best.id} {best.params} ({best.accuracy:.4f})")


def register_evaluate(subparsers):
    p = subparsers.add_parser("cross-validate", help="Simulated k-fold cross-validation")
    p.add_argument("--folds", type=int, default=5, help="Number of folds (>= 2)")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.set_defaults(_handler=_handle_cross_validate)

    p = subparsers.add_parser("tune", help="Simulated hyperparameter grid search")
    p.add_argument("--grid", action="append", default=[], metavar="KEY=V1,V2", help="Grid axis (repeatable)")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.set_defaults(_handler=_handle_tune)
