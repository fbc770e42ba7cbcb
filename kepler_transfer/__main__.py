"""
Command-line interface for kepler_transfer.

Usage:
    # Plan a transfer between two orbits (elements: a e w M0)
    python -m kepler_transfer plan --start 2 0 0 0 --target 4 0 0 0 --mu 1e11 --time 2

    # Run one of the built-in scenarios
    python -m kepler_transfer simulate --scenario transfer --duration 20 --dt 0.5

    # List the built-in scenarios
    python -m kepler_transfer scenarios
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from kepler_transfer.config import make_simulation_config
from kepler_transfer.constants import DEFAULT_GRAVITATIONAL_PARAMETER
from kepler_transfer.exceptions import OrbitError
from kepler_transfer.orbit import Orbit
from kepler_transfer.planner import plan_transfer
from kepler_transfer.scenario import DEMO_SCENARIOS, load_scenario

logger = logging.getLogger('kepler_transfer')


def positive_float(value):
    """Parse a strictly positive float argument."""
    x = float(value)
    if not x > 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return x


def _setup_plan_parser(subparsers):
    """
    Set up the plan subcommand parser.

    Parameters
    ----------
    subparsers : argparse._SubParsersAction
        The subparsers object from the main parser

    Returns
    -------
    argparse.ArgumentParser
        The configured plan parser
    """
    plan_parser = subparsers.add_parser(
        'plan',
        help='Plan a transfer between two orbits and print it as JSON',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hohmann transfer from radius 2 to radius 4
  python -m kepler_transfer plan --start 2 0 0 0 --target 4 0 0 0 --mu 1e11

  # Tangential transfer onto an eccentric orbit, written to a file
  python -m kepler_transfer plan --start 2 0.2 0 0 --target 4 0.25 1.5708 0 --output transfer.json
"""
    )
    plan_parser.add_argument(
        '--start', '-s',
        type=float,
        nargs=4,
        required=True,
        metavar=('A', 'E', 'W', 'M0'),
        help='Start orbit: semi-major axis, eccentricity, argument of periapsis, initial mean anomaly'
    )
    plan_parser.add_argument(
        '--target', '-t',
        type=float,
        nargs=4,
        required=True,
        metavar=('A', 'E', 'W', 'M0'),
        help='Target orbit, same element order as --start'
    )
    plan_parser.add_argument(
        '--mu',
        type=positive_float,
        default=DEFAULT_GRAVITATIONAL_PARAMETER,
        help=f'Gravitational parameter of the parent body (default: {DEFAULT_GRAVITATIONAL_PARAMETER:g})'
    )
    plan_parser.add_argument(
        '--time',
        type=float,
        default=0.0,
        help='Execution time of the first maneuver (default: 0.0)'
    )
    plan_parser.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='Also save the transfer to this JSON file'
    )
    return plan_parser


def _setup_simulate_parser(subparsers):
    """Set up the simulate subcommand parser."""
    simulate_parser = subparsers.add_parser(
        'simulate',
        help='Run a scenario and print body positions',
    )
    simulate_parser.add_argument(
        '--scenario',
        type=str,
        default='transfer',
        help=f'Built-in scenario ({", ".join(DEMO_SCENARIOS)}) or a scenario JSON file (default: transfer)'
    )
    simulate_parser.add_argument(
        '--duration',
        type=float,
        default=10.0,
        help='Simulated time span (default: 10.0)'
    )
    simulate_parser.add_argument(
        '--dt',
        type=positive_float,
        default=0.5,
        help='Time step between ticks (default: 0.5)'
    )
    simulate_parser.add_argument(
        '--world',
        action='store_true',
        help='Print world positions instead of positions relative to the parent'
    )
    simulate_parser.add_argument(
        '--save',
        type=str,
        default=None,
        help='Save the scenario to this JSON file before running it'
    )
    return simulate_parser


def _format_position(position):
    return ' '.join(f'{float(x): .6f}' for x in position)


def run_plan(args):
    start = Orbit(*args.start)
    target = Orbit(*args.target)
    transfer = plan_transfer(start, target, args.mu, args.time)

    for i, maneuver in enumerate(transfer.maneuvers):
        logger.info("Maneuver %d at t=%.6g: delta-v %.6g", i, maneuver.execution_time,
                    maneuver.delta_v(args.mu))
    logger.info("Total delta-v: %.6g", transfer.total_delta_v(args.mu))

    print(transfer.model_dump_json(indent=2))
    if args.output:
        transfer.save(args.output)
        logger.info("Saved transfer to %s", args.output)
    return 0


def run_simulate(args):
    scenario = load_scenario(args.scenario)
    if args.save:
        scenario.save(args.save)
        logger.info("Saved scenario to %s", args.save)

    sim = scenario.build_simulation(make_simulation_config())
    num_ticks = int(args.duration // args.dt) + 1
    for i in range(num_ticks):
        t = i * args.dt
        result = sim.tick(t)
        for body_id, maneuver in result.applied.items():
            print(f"t={t:.6f} {sim.body(body_id).name}: maneuver scheduled at t={maneuver.execution_time:.6f}")
        positions = sim.world_positions() if args.world else result.positions
        for body_id, position in positions.items():
            print(f"t={t:.6f} {sim.body(body_id).name}: {_format_position(position)}")
    return 0


def run_scenarios(args):
    for name, scenario in DEMO_SCENARIOS.items():
        print(f"{name:<12} {scenario.description}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Keplerian orbit propagation and impulsive transfer planning',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    # Create subparsers for different commands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.required = True

    _setup_plan_parser(subparsers)
    _setup_simulate_parser(subparsers)
    subparsers.add_parser('scenarios', help='List the built-in scenarios')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        if args.command == 'plan':
            return run_plan(args)
        elif args.command == 'simulate':
            return run_simulate(args)
        else:
            return run_scenarios(args)
    except (OrbitError, OSError, ValidationError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1


if __name__ == '__main__':
    sys.exit(main())
