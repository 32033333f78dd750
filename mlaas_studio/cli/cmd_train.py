# cli/cmd_train.py
from __future__ import annotations
import argparse
from ..algorithms import ALGORITHMS, FAMILIES, is_supervised
from ..data.ingest import load_csv
from ..training.simulators import TrainingSimulator, best_result
from .utils import cli_config, open_registry, resolve_hidden_layers


def _handle(args: argparse.Namespace) -> None:
    config = cli_config(args)
    if args.epochs is not None:        config["epochs"] = int(args.epochs)
    if args.learning_rate is not None: config["learning_rate"] = float(args.learning_rate)

    view = load_csv(args.csv, target=args.target)
    print(f"Loaded {view.n_rows} rows from {view.name}: features={view.features} target={view.target}")

    nn_kwargs = {}
    layers = resolve_hidden_layers(args.custom_layers)
    if args.family == "dl" and layers:
        nn_kwargs = {"architecture": layers, "epochs": config["epochs"], "learning_rate": config["learning_rate"]}

    sim = TrainingSimulator(config=config)
    results = sim.train_family(args.family, view.rows, view.features, view.target, algorithm=args.algorithm, **nn_kwargs)
    for r in results:
        print(f"{r.algorithm:<22} accuracy={r.accuracy:.4f}")
    best = best_result(results)
    print(f"Best: {best.algorithm} ({best.accuracy:.4f})")

    if args.no_save:
        return
    registry = open_registry(args, config)
    for r in results:
        targets = [view.target] if is_supervised(r.algorithm) else None
        model = registry.add_model(r.to_model_data(view.name, targets=targets))
        print(f"Saved {model.name} as {model.id}")
    if registry.is_offline:
        print("Model store unavailable: models were saved to the local cache.")


def register_train(subparsers):
    p = subparsers.add_parser("train", help="Train (simulate) models on a CSV dataset and save them")
    p.add_argument("--csv", type=str, required=True, help="Path to a .csv dataset")
    p.add_argument("--target", type=str, default=None, help="Target column (default: last column)")
    p.add_argument("--family", type=str, default="ml", choices=sorted(FAMILIES), help="Algorithm family")
    p.add_argument("--algorithm", type=str, default=None, choices=ALGORITHMS, help="Train a single algorithm of the family")
    p.add_argument("--custom-layers", type=str, default=None, help="Neural network layers, e.g. 64,32 (dl only)")
    p.add_argument("--epochs", type=int, default=None, help="Neural network epochs")
    p.add_argument("--learning-rate", type=float, default=None, help="Neural network learning rate")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.add_argument("--fast", action="store_true", help="Skip the simulated training delay")
    p.add_argument("--no-save", action="store_true", help="Do not save results to the registry")
    p.set_defaults(_handler=_handle)
