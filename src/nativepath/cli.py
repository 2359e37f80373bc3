"""CLI for nativepath: ``nativepath command`` and ``nativepath launch``.

Usage:
    nativepath command job.yaml --controller-pid 4242
    nativepath launch job.yaml --controller ipc:///tmp/controller.sock \\
        --quantiles quantiles.json --lists lists.yaml --ignore-downtime
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from nativepath.core.environment import AUTODETECT, Environment, Settings
from nativepath.core.job import Job, ListDocument, Quantiles, load_yaml
from nativepath.ipc.pipes import ProcessPipes
from nativepath.process.builder import AutodetectBuilder, LaunchOptions, assemble_command
from nativepath.process.controller import (
    ControllerError,
    ControllerTimeoutError,
    NativeController,
)
from nativepath.process.tempfiles import delete_files

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nativepath",
        description="Build and launch autodetect workers through the native controller",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("job", help="Job config file (YAML or JSON)")
    common.add_argument(
        "--settings",
        default=None,
        help="Node settings file (YAML or JSON)",
    )
    common.add_argument(
        "--ignore-downtime",
        action="store_true",
        help="Skip the gap since the job last ran",
    )
    common.add_argument(
        "--quantiles",
        default=None,
        help="Quantiles file to warm-start the normalizer from",
    )
    common.add_argument(
        "--lists",
        default=None,
        help="File with lookup lists referenced by detector rules",
    )

    cmd_p = sub.add_parser(
        "command",
        parents=[common],
        help="Print the assembled command without starting the worker",
    )
    cmd_p.add_argument(
        "--controller-pid",
        type=int,
        default=0,
        help="Controller pid to embed in the command (default: 0)",
    )

    launch_p = sub.add_parser(
        "launch",
        parents=[common],
        help="Ask the native controller to start the worker",
    )
    launch_p.add_argument(
        "--controller",
        default=None,
        help="Controller address (default: from settings)",
    )
    launch_p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Controller timeout in seconds (default: from settings)",
    )

    return parser


def _load_options(args: argparse.Namespace) -> LaunchOptions:
    quantiles = None
    if args.quantiles:
        quantiles = Quantiles.from_dict(load_yaml(args.quantiles))

    lists: List[ListDocument] = []
    if args.lists:
        documents = load_yaml(args.lists) or []
        if not isinstance(documents, list):
            raise ValueError(f"Lists file {args.lists} must hold a list of documents")
        lists = [ListDocument.from_dict(d) for d in documents]

    return LaunchOptions(
        ignore_downtime=args.ignore_downtime,
        referenced_lists=frozenset(lists),
        quantiles=quantiles,
    )


def _run_command(
    args: argparse.Namespace,
    job: Job,
    env: Environment,
    settings: Settings,
    files_to_delete: List[Path],
) -> int:
    pipes = ProcessPipes.for_job(
        env, AUTODETECT, job.id,
        connect_timeout_sec=settings.named_pipe_connect_timeout_sec,
    )
    command = assemble_command(
        job,
        _load_options(args),
        files_to_delete,
        env,
        settings,
        args.controller_pid,
        pipes,
    )
    print(" ".join(command))
    for path in files_to_delete:
        logger.info(f"Config file kept for the worker: {path}")
    return 0


def _run_launch(
    args: argparse.Namespace,
    job: Job,
    env: Environment,
    settings: Settings,
    files_to_delete: List[Path],
) -> int:
    address = args.controller or settings.controller_address
    timeout = args.timeout if args.timeout is not None else settings.controller_timeout_sec
    options = _load_options(args)
    pipes = ProcessPipes.for_job(
        env, AUTODETECT, job.id,
        connect_timeout_sec=settings.named_pipe_connect_timeout_sec,
    )

    job_logger = logging.getLogger(f"nativepath.job.{job.id}")
    with NativeController(address, timeout_sec=timeout) as controller:
        (
            AutodetectBuilder(job, files_to_delete, job_logger, env, settings, controller, pipes)
            .ignore_downtime(options.ignore_downtime)
            .referenced_lists(options.referenced_lists)
            .quantiles(options.quantiles)
            .build()
        )
    print(f"Started autodetect for job '{job.id}'")
    for path in files_to_delete:
        print(f"  config: {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 1

    files_to_delete: List[Path] = []
    try:
        job = Job.from_yaml(args.job)
        settings = Settings.from_yaml(args.settings) if args.settings else Settings()
        env = Environment.from_env()

        if args.command == "command":
            return _run_command(args, job, env, settings, files_to_delete)
        return _run_launch(args, job, env, settings, files_to_delete)
    except ControllerTimeoutError as e:
        # A timed out start may still have launched the worker, so its
        # config files are left in place
        logger.error(f"Controller error: {e}")
        for path in files_to_delete:
            logger.warning(f"Config file left for cleanup: {path}")
    except (ControllerError, OSError, ValueError, KeyError) as e:
        logger.error(f"Launch failed: {e}")
        delete_files(files_to_delete)
    return 1


if __name__ == "__main__":
    sys.exit(main())
