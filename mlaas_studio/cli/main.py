# cli/main.py
from __future__ import annotations
import argparse
import logging
from ..errors import StudioError
from .cmd_train import register_train
from .cmd_manage import register_manage
from .cmd_evaluate import register_evaluate
from .cmd_serve import register_serve
from .cmd_wizard import register_wizard


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Train, manage and export MLaaS studio models")
    p.add_argument("--db", type=str, default=None, help="SQLite model store (default: outputs/models.db)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command")
    register_train(sub)
    register_manage(sub)
    register_evaluate(sub)
    register_serve(sub)
    register_wizard(sub)
    return p


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not hasattr(args, "_handler"):
        parser.print_help(); return
    try:
        args._handler(args)
    except (StudioError, ValueError) as e:
        raise SystemExit(str(e)) from e

if __name__ == "__main__":
    main()
