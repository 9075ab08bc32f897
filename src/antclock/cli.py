#!/usr/bin/env python3
"""
Antclock demo CLI

Usage:
    antclock-demo compare [--nx N] [--L LENGTH] [--config FILE] [--max-time T]
    antclock-demo run {smooth,cliff} [--nx N] [--L LENGTH] [--config FILE] [--receipts FILE]
    antclock-demo conserve {smooth,cliff} [--duration T] [--dt DT] [--report-interval T]
    antclock-demo --version

All commands print a JSON document on stdout. Logs go to stderr as JSON lines.
"""

import argparse
import json
import logging
import sys

from . import __version__
from .core.antclock_driver import antclock_simulate
from .core.antclock_policy import AntclockConfig, AntclockPolicyError
from .core.logging_config import setup_logging
from .core.tm_analysis import run_summary
from .core.tm_conservation import simulate
from .core.tm_core_fields import initialize_cliff, initialize_smooth
from .core.tm_receipts import ReceiptEmitter, verify_receipt_chain

INITIALIZERS = {
    "smooth": initialize_smooth,
    "cliff": initialize_cliff,
}


def _load_config(args) -> AntclockConfig:
    config = AntclockConfig.from_file(args.config) if args.config else AntclockConfig()
    if getattr(args, 'max_time', None) is not None:
        config = config.replace(max_coordinate_time=args.max_time)
    return config


def cmd_compare(args):
    """Run both initial configurations through the adaptive driver."""
    config = _load_config(args)
    output = {"config": config.to_dict(), "runs": {}}
    for name, init in INITIALIZERS.items():
        result = antclock_simulate(init(args.nx, args.L), config)
        output["runs"][name] = run_summary(result)
    print(json.dumps(output, indent=2))
    return 0


def cmd_run(args):
    """Run one initial configuration, optionally writing step receipts."""
    config = _load_config(args)
    emitter = ReceiptEmitter(receipts_file=args.receipts, run_id=f"antclock_{args.init}")
    result = antclock_simulate(INITIALIZERS[args.init](args.nx, args.L), config,
                               receipt_emitter=emitter)
    chain_ok, errors = verify_receipt_chain(emitter.receipts)
    output = {
        "init": args.init,
        "config": config.to_dict(),
        "summary": run_summary(result),
        "receipts": {"count": len(emitter.receipts), "chain_valid": chain_ok, "errors": errors},
    }
    print(json.dumps(output, indent=2))
    return 0 if result.all_finite else 2


def cmd_conserve(args):
    """Fixed-step run with conservation checkpoints."""
    state = INITIALIZERS[args.init](args.nx, args.L)
    result = simulate(state, args.duration, args.dt, report_interval=args.report_interval)
    output = {
        "init": args.init,
        "initial_energy": result.initial_energy,
        "steps": result.n_steps,
        "second_law_violations": result.second_law_violations(),
        "checkpoints": [r.to_dict() for r in result.conservation_reports],
    }
    print(json.dumps(output, indent=2))
    return 0


def _add_grid_args(p):
    p.add_argument('--nx', type=int, default=32, help='Grid points')
    p.add_argument('--L', type=float, default=2.0, help='Domain length')


def main(argv=None):
    parser = argparse.ArgumentParser(description="Antclock two-manifold demo")
    parser.add_argument('--version', action='version', version=f'antclock {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log at DEBUG level')
    parser.add_argument('--log-file', help='Also write JSON logs to this file')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    compare_parser = subparsers.add_parser('compare', help='Adaptive runs of smooth and cliff side by side')
    _add_grid_args(compare_parser)
    compare_parser.add_argument('--config', help='JSON file with AntclockConfig overrides')
    compare_parser.add_argument('--max-time', type=float, help='Override max_coordinate_time')

    run_parser = subparsers.add_parser('run', help='Adaptive run of one configuration')
    run_parser.add_argument('init', choices=sorted(INITIALIZERS))
    _add_grid_args(run_parser)
    run_parser.add_argument('--config', help='JSON file with AntclockConfig overrides')
    run_parser.add_argument('--max-time', type=float, help='Override max_coordinate_time')
    run_parser.add_argument('--receipts', help='Append step receipts to this JSONL file')

    conserve_parser = subparsers.add_parser('conserve', help='Fixed-step run with conservation checkpoints')
    conserve_parser.add_argument('init', choices=sorted(INITIALIZERS))
    _add_grid_args(conserve_parser)
    conserve_parser.add_argument('--duration', type=float, default=0.5)
    conserve_parser.add_argument('--dt', type=float, default=0.01)
    conserve_parser.add_argument('--report-interval', type=float, default=0.1)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    commands = {
        'compare': cmd_compare,
        'run': cmd_run,
        'conserve': cmd_conserve,
    }

    try:
        return commands[args.command](args)
    except (AntclockPolicyError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
