# cli/cmd_wizard.py
from __future__ import annotations
import argparse
from ..algorithms import FAMILIES
from ..config import CONFIG
from ..data.ingest import load_csv
from ..registry.health import HealthMonitor
from .cmd_train import _handle as _train
from .utils import format_model, open_registry

FAMILY_LABELS = {
    "Machine learning (all 12 algorithms)": "ml",
    "Deep learning (neural network)": "dl",
    "Clustering": "clustering",
    "Dimensionality reduction": "dimensionality_reduction",
    "Anomaly detection": "anomaly_detection",
}


def _ask(question):
    answer = question.ask()
    if answer is None:
        raise SystemExit("Cancelled")
    return answer


def _handle(args: argparse.Namespace) -> None:
    import questionary

    csv_path = _ask(questionary.path("Path to CSV dataset:"))
    view = load_csv(csv_path)
    target = _ask(questionary.select("Target column:", choices=view.columns, default=view.target))
    view = view.with_target(target)
    print(f"{view.n_rows} rows, features: {', '.join(view.features)}")

    family = FAMILY_LABELS[_ask(questionary.select("What do you want to train?", choices=list(FAMILY_LABELS)))]

    algorithm = None
    custom_layers = None
    if family == "dl":
        auto = _ask(questionary.confirm("Search architectures and learning rates automatically?", default=True))
        if not auto:
            custom_layers = _ask(questionary.text("Hidden layers (comma-separated neurons):", default="64,32")).strip()
    else:
        choice = _ask(questionary.select("Algorithm:", choices=["All"] + FAMILIES[family], default="All"))
        algorithm = None if choice == "All" else choice

    fast = _ask(questionary.confirm("Skip the simulated training delay?", default=True))
    save = _ask(questionary.confirm("Save trained models to the registry?", default=True))

    train_args = argparse.Namespace(
        csv=csv_path, target=target, family=family, algorithm=algorithm,
        custom_layers=custom_layers, epochs=None, learning_rate=None,
        seed=None, fast=fast, no_save=not save, db=getattr(args, "db", None),
    )
    _train(train_args)
    if not save:
        return

    registry = open_registry(train_args)
    with HealthMonitor(registry, interval=CONFIG["health_check_interval"]):
        while True:
            action = _ask(questionary.select(
                "Next:", choices=["Show best model", "Fine-tune best model", "Export best model", "Quit"],
            ))
            if action == "Quit":
                return
            best = registry.get_best_model(view.name)
            if best is None:
                print(f"No models saved for {view.name}")
                continue
            if action == "Show best model":
                print(format_model(best))
            elif action == "Fine-tune best model":
                tuned = registry.fine_tune_model(best.id)
                print(f"Created {tuned.name}: {best.accuracy:.4f} -> {tuned.accuracy:.4f}")
            else:
                ext = _ask(questionary.select(
                    "Format:", choices=["json", "pkl", "h5", "pt", "onnx"], default="json",
                ))
                print(f"Wrote {registry.download_model(best.id, ext)}")


def register_wizard(subparsers):
    p = subparsers.add_parser("wizard", help="Interactive setup & run")
    p.set_defaults(_handler=_handle)
