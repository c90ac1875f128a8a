#!/usr/bin/env python3
"""
papierkit - run and watch paper-machine programs
=================================================

One CLI for everything:
    papierkit list     - Registered programs and their arguments
    papierkit listing  - Instruction listing of a program
    papierkit run      - Run a program and show its paper and result
    papierkit step     - Step through a program interactively
    papierkit papers   - Run a program and print every paper it used

Usage:
    python papierkit.py <command> [options]
    python papierkit.py <command> --help

Examples:
    python papierkit.py list
    python papierkit.py listing gcd-mod 1234 56
    python papierkit.py run gcd 98765432 1234567
    python papierkit.py run pascal --breaks 5
    python papierkit.py -vv step modulo 1234 56
    python papierkit.py papers gcd-mod 98765432 1234567
"""

import argparse
import logging
import os
import sys
import traceback

from rich.console import Console
from rich.table import Table

# Ensure our package is importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from papier import __version__
from papier.conversion import ConversionError
from papier.instructions import listing
from papier.log_setup import setup_logging, verbosity_level
from papier.machine import Machine, MachineError
from papier.programs import PROGRAMS, build_program
from papier.render import collect_papers, paper_panel, render_paper
from papier.stepper import Stepper, StopReason

log = logging.getLogger("papier.cli")

DEFAULT_MAX_STEPS = 100_000


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="papierkit",
        description="Paper machine toolkit: list, run and step programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  list       Registered programs and their arguments
  listing    Instruction listing of a program
  run        Run a program and show its paper and result
  step       Step through a program interactively
  papers     Run a program and print every paper it used
""",
    )
    parser.add_argument("--version", action="version", version=f"papierkit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More log output (-v info, -vv debug)")
    parser.add_argument("--log-dir", default=None, help="Also write a debug log file here")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── list ─────────────────────────────────────────────────────────────
    sub.add_parser("list", help="Registered programs and their arguments")

    # ── listing ──────────────────────────────────────────────────────────
    p_lst = sub.add_parser("listing", help="Instruction listing of a program")
    _add_program_args(p_lst)

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a program and show its paper and result")
    _add_program_args(p_run)
    p_run.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help=f"Give up after this many steps (default: {DEFAULT_MAX_STEPS})")
    p_run.add_argument("--breaks", type=int, default=None,
                       help="Stop after this many breakpoints instead of running to a result")
    p_run.add_argument("--papers", action="store_true",
                       help="Also show every finished paper")

    # ── step ─────────────────────────────────────────────────────────────
    p_step = sub.add_parser("step", help="Step through a program interactively")
    _add_program_args(p_step)
    p_step.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                        help="Step budget for each free run")

    # ── papers ───────────────────────────────────────────────────────────
    p_pap = sub.add_parser("papers", help="Run a program and print every paper it used")
    _add_program_args(p_pap)
    p_pap.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS)

    # ── Parse and dispatch ───────────────────────────────────────────────
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    console = Console()
    setup_logging(console_level=verbosity_level(args.verbose), log_dir=args.log_dir)

    handler = COMMANDS[args.command]
    try:
        return handler(args, console)
    except (MachineError, ConversionError, KeyError, ValueError) as e:
        message = e.args[0] if isinstance(e, KeyError) and e.args else e
        print(f"Error: {message}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e!r}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 2


def _add_program_args(p):
    p.add_argument("program", help="Program name (see 'papierkit list')")
    p.add_argument("numbers", nargs="*", type=float, help="Program arguments")


def _machine(args) -> Machine:
    program = build_program(args.program, args.numbers)
    log.info("Built %s(%s): %d instructions", args.program,
             ", ".join(f"{n:g}" for n in args.numbers), len(program))
    return Machine(program)


def _print_result(console, vm):
    if vm.finished:
        console.print(f"[bold]result:[/bold] {vm.result(str).strip()}")


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

# ── list ─────────────────────────────────────────────────────────────────
def cmd_list(args, console):
    table = Table(title="Programs")
    table.add_column("name", style="cyan")
    table.add_column("args", justify="right")
    table.add_column("description")
    for name, profile in PROGRAMS.items():
        count = profile["args"]
        table.add_row(name, "1+" if count == -1 else str(count), profile["description"])
    console.print(table)
    return 0


# ── listing ──────────────────────────────────────────────────────────────
def cmd_listing(args, console):
    program = build_program(args.program, args.numbers)
    console.print(listing(program), markup=False, highlight=False)
    return 0


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args, console):
    stepper = Stepper(_machine(args))
    breaks = 0
    remaining = args.max_steps
    while True:
        before = stepper.steps
        reason = stepper.run_free(remaining)
        remaining -= stepper.steps - before
        if reason is StopReason.DONE:
            break
        if reason is StopReason.TIMEOUT:
            console.print(paper_panel(stepper.machine))
            raise MachineError(f"No result after {stepper.steps} steps")
        breaks += 1
        if args.breaks is not None and breaks >= args.breaks:
            break

    vm = stepper.machine
    log.info("Stopped after %d steps (%d breakpoints)", stepper.steps, breaks)
    console.print(paper_panel(vm))
    if args.papers:
        for paper in collect_papers(vm)[1:]:
            console.print(paper_panel(paper))
    _print_result(console, vm)
    return 0


# ── step ─────────────────────────────────────────────────────────────────
def cmd_step(args, console):
    stepper = Stepper(_machine(args))
    console.print("[dim]Enter: step   c: run to next breakpoint   q: quit[/dim]")
    while not stepper.finished:
        try:
            key = input("> ").strip().lower()
        except EOFError:
            break
        if key == "q":
            break
        if key == "c":
            reason = stepper.run_free(args.max_steps)
            console.print(f"[yellow]{reason.value}[/yellow] after {stepper.steps} steps")
        else:
            stepper.advance()
        console.print(stepper.view())

    _print_result(console, stepper.machine)
    return 0


# ── papers ───────────────────────────────────────────────────────────────
def cmd_papers(args, console):
    vm = _machine(args).run(args.max_steps)
    for number, paper in enumerate(collect_papers(vm)):
        console.rule(f"paper {number}")
        console.print(render_paper(paper), markup=False, highlight=False, end="")
    _print_result(console, vm)
    return 0


COMMANDS = {
    "list": cmd_list,
    "listing": cmd_listing,
    "run": cmd_run,
    "step": cmd_step,
    "papers": cmd_papers,
}


if __name__ == "__main__":
    sys.exit(main())
