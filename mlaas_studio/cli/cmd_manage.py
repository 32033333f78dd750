# cli/cmd_manage.py
from __future__ import annotations
import argparse
from ..algorithms import ModelType
from ..files import write_models_csv
from ..models.export import get_recommended_extensions
from ..models.records import FineTuneOptions
from ..path_resolver import resolve_export_path
from .utils import format_model, open_registry, parse_row, split_names

TYPE_CHOICES = [t.value for t in ModelType]


def _handle_list(args: argparse.Namespace) -> None:
    registry = open_registry(args)
    models = registry.search(args.search or "", args.type)
    if args.dataset:
        models = [m for m in models if m.dataset_name == args.dataset]
    for m in models:
        print(format_model(m))
    print(f"{len(models)} model(s)")
    if args.output:
        out_path = resolve_export_path(args.output)
        write_models_csv(models, out_path)
        print(f"Wrote {len(models)} models to {out_path}")


def _handle_best(args: argparse.Namespace) -> None:
    registry = open_registry(args)
    if args.type:
        best = registry.get_best_model_by_type(args.dataset, args.type)
    else:
        best = registry.get_best_model(args.dataset)
    if best is None:
        print(f"No models found for dataset '{args.dataset}'")
        return
    print(format_model(best))


def _handle_delete(args: argparse.Namespace) -> None:
    registry = open_registry(args)
    registry.delete_model(args.id)
    print(f"Deleted {args.id}")


def _handle_fine_tune(args: argparse.Namespace) -> None:
    registry = open_registry(args)
    options = FineTuneOptions(
        epochs=args.epochs,
        learning_rate=args.learning_rate,
        batch_size=args.batch_size,
        optimizer=args.optimizer,
        targets=split_names(args.targets),
    )
    original = registry.get_model_by_id(args.id)
    model = registry.fine_tune_model(args.id, options)
    before = f"{original.accuracy:.4f} -> " if original is not None else ""
    print(f"Created {model.name} ({model.id}): accuracy {before}{model.accuracy:.4f}")


def _handle_export(args: argparse.Namespace) -> None:
    registry = open_registry(args)
    if args.recommended:
        model = registry.get_model_by_id(args.id)
        if model is None:
            raise SystemExit(f"Model '{args.id}' not found")
        print(", ".join(get_recommended_extensions(model)))
        return
    path = registry.download_model(args.id, args.format, args.dir)
    print(f"Wrote {path}")


def _handle_predict(args: argparse.Namespace) -> None:
    if not args.row:
        raise SystemExit("At least one --row is required")
    registry = open_registry(args)
    rows = [parse_row(r) for r in args.row]
    result = registry.predict_with_model(args.id, rows)
    if not result.success:
        raise SystemExit(f"Prediction failed: {result.error or 'service unavailable'}")
    for row, pred in zip(rows, result.predictions or []):
        print(f"{row} -> {pred}")
    if result.explanation:
        print(result.explanation)


def register_manage(subparsers):
    p = subparsers.add_parser("list", help="List saved models")
    p.add_argument("--dataset", type=str, default=None, help="Only models trained on this dataset")
    p.add_argument("--type", type=str, default=None, choices=TYPE_CHOICES, help="Only models of this type")
    p.add_argument("--search", type=str, default=None, help="Match name, algorithm or dataset")
    p.add_argument("--output", type=str, default=None, help="Also write the listing to this CSV")
    p.set_defaults(_handler=_handle_list)

    p = subparsers.add_parser("best", help="Show the best model for a dataset")
    p.add_argument("--dataset", type=str, required=True, help="Dataset name")
    p.add_argument("--type", type=str, default=None, choices=TYPE_CHOICES, help="Restrict to a model type")
    p.set_defaults(_handler=_handle_best)

    p = subparsers.add_parser("delete", help="Delete a saved model")
    p.add_argument("id", type=str, help="Model id")
    p.set_defaults(_handler=_handle_delete)

    p = subparsers.add_parser("fine-tune", help="Create a fine-tuned copy of a model")
    p.add_argument("id", type=str, help="Model id")
    p.add_argument("--epochs", type=int, default=10, help="Fine-tune epochs")
    p.add_argument("--learning-rate", type=float, default=0.001, help="Fine-tune learning rate")
    p.add_argument("--batch-size", type=int, default=32, help="Batch size")
    p.add_argument("--optimizer", type=str, default="adam", choices=["adam", "sgd", "rmsprop", "adagrad"])
    p.add_argument("--targets", type=str, default=None, help="Comma-separated target columns")
    p.set_defaults(_handler=_handle_fine_tune)

    p = subparsers.add_parser("export", help="Write a model in a downloadable format")
    p.add_argument("id", type=str, help="Model id")
    p.add_argument("--format", type=str, default="json", help="File extension (json, pkl, h5, pt, onnx, ...)")
    p.add_argument("--dir", type=str, default=None, help="Output directory (default: outputs/downloads)")
    p.add_argument("--recommended", action="store_true", help="Only print the recommended extensions")
    p.set_defaults(_handler=_handle_export)

    p = subparsers.add_parser("predict", help="Predict with a saved model via the service")
    p.add_argument("id", type=str, help="Model id")
    p.add_argument("--row", action="append", default=[], metavar="V1,V2,...", help="Input row (repeatable)")
    p.set_defaults(_handler=_handle_predict)
