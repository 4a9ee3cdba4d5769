# layout_optimizer/cli.py
"""
Command line interface.

    # Encode every character of elements.txt with the current layout
    python optimize_layout.py encode

    # Evaluate the layout currently written in config.yaml
    python optimize_layout.py evaluate

    # Optimize it, saving better layouts under output/
    python optimize_layout.py --config scheme.yaml --seed 42 optimize
"""
import argparse
import os
import sys
import time
import traceback
from collections import Counter
from datetime import timedelta

from .annealing import Annealer
from .config import load_config
from .constraints import compile_constraints
from .errors import LayoutOptimizerError
from .logging_utils import set_verbosity
from .objective import LayoutEvaluator, load_assets, read_decompositions
from .reporting import ConsoleReporter, save_codes
from .representation import Representation

ASSETS_DIR = 'assets'
CHARACTERS_OUTPUT = 'characters.txt'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Optimize the assignment of elements to keys under placement constraints.')
    parser.add_argument('command', choices=['encode', 'evaluate', 'optimize'],
                        help='encode characters, evaluate the current layout or optimize it')
    parser.add_argument('--config', default='config.yaml',
                        help='scheme file (default: config.yaml)')
    parser.add_argument('-t', '--decompositions', default='elements.txt',
                        help='character to element names table (default: elements.txt)')
    parser.add_argument('-e', '--elements', default=None,
                        help='element frequency table (default: assets/element_frequency.txt)')
    parser.add_argument('-k', '--key-equivalence', default=None,
                        help='key effort table (default: assets/key_equivalence.txt)')
    parser.add_argument('-d', '--key-distribution', default=None,
                        help='ideal key load table (default: assets/key_distribution.txt)')
    parser.add_argument('-o', '--output', default='output',
                        help='directory for saved solutions (default: output)')
    parser.add_argument('--seed', type=int, default=None,
                        help='random seed (overrides optimization.metaheuristic.seed)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='show debug logging')
    return parser

def prepare(args: argparse.Namespace):
    """Load the scheme and assets and build the evaluator."""
    config = load_config(args.config)
    representation = Representation(config)
    assets = load_assets(
        args.elements or os.path.join(ASSETS_DIR, 'element_frequency.txt'),
        args.key_equivalence or os.path.join(ASSETS_DIR, 'key_equivalence.txt'),
        args.key_distribution or os.path.join(ASSETS_DIR, 'key_distribution.txt'),
    )
    evaluator = LayoutEvaluator(representation, assets, config['optimization']['objective'])
    return config, representation, evaluator

def encode(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    representation = Representation(config)
    decompositions = read_decompositions(args.decompositions)
    codes = representation.encode(decompositions, representation.initial)
    save_codes(CHARACTERS_OUTPUT, codes)

    counts = Counter(codes.values())
    duplicates = sum(n - 1 for n in counts.values() if n > 1)
    print(f"\n{len(codes)} characters encoded, {duplicates} duplicate codes")
    print(f"Codes saved to {CHARACTERS_OUTPUT}")

def evaluate(args: argparse.Namespace) -> None:
    config, representation, evaluator = prepare(args)
    print(f"\n{representation.elements} elements on {len(representation.alphabet)} keys")
    print("Current layout:")
    print(evaluator.evaluate(representation.initial))

def optimize(args: argparse.Namespace) -> None:
    config, representation, evaluator = prepare(args)
    settings = config['optimization']['metaheuristic']
    if args.seed is not None:
        settings['seed'] = args.seed

    constraints = compile_constraints(representation)
    print("\nConfiguration:")
    print(f"{representation.elements} elements on {len(constraints.alphabet)} keys: {representation.alphabet}")
    print(f"{len(constraints.fixed)} fixed elements")
    print(f"{len(constraints.narrowed)} narrowed elements")

    reporter = ConsoleReporter(args.output)
    annealer = Annealer(representation, constraints, evaluator, reporter, settings)
    try:
        state = annealer.solve()
    finally:
        reporter.close()

    print("\nBest layout:")
    print(state.best_metric)

COMMANDS = {
    'encode': encode,
    'evaluate': evaluate,
    'optimize': optimize,
}

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    set_verbosity(args.verbose)
    start_time = time.time()
    try:
        COMMANDS[args.command](args)
    except LayoutOptimizerError as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 1

    elapsed = time.time() - start_time
    print(f"Total runtime: {timedelta(seconds=int(elapsed))}")
    return 0
