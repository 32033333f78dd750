# cli/cmd_serve.py
from __future__ import annotations
import argparse


def _handle(args: argparse.Namespace) -> None:
    import uvicorn
    from ..service.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level)


def register_serve(subparsers):
    p = subparsers.add_parser("serve", help="Run the training/prediction HTTP service")
    p.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    p.add_argument("--port", type=int, default=8000, help="Port")
    p.add_argument("--log-level", type=str, default="info", choices=["debug", "info", "warning", "error"])
    p.set_defaults(_handler=_handle)
