"""Command-line interface for ifshow."""

import argparse
import os
import sys

from .ifshow import ifshow_stream

HELP_TEXT = """\
Usage:
  ifshow -a                     # Show all interfaces
  ifshow -i <interface_name>    # Show specific interface

Examples:
  ifshow -a
  ifshow -i eth0

"""


class UsageError(Exception):
    """Malformed command line."""


def parse_args(argv=None) -> argparse.Namespace:
    """Validate the command line and parse it.

    Only ``-a`` alone or ``-i <name>`` are accepted. Whatever follows ``-i``
    is taken as the interface name, even if it starts with a dash.

    Raises:
        UsageError: For any other shape of command line.
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    if not 1 <= len(argv) <= 2:
        raise UsageError(
            "\nUnrecognized number of arguments. Please refer to the following:"
        )
    if argv[0] == "-a":
        if len(argv) != 1:
            raise UsageError("Error: '-a' must be used alone.")
        return argparse.Namespace(all=True, interface=None)
    if argv[0] == "-i":
        if len(argv) != 2:
            raise UsageError("Error: '-i' requires an interface name.")
        return argparse.Namespace(all=False, interface=argv[1])
    raise UsageError(
        f"Unrecognized argument: '{argv[0]}'. Please refer to the following:"
    )


def _silence_stdout():
    """Point stdout at devnull so the interpreter's final flush cannot fail."""
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def main(argv=None):
    """Main entry point for the CLI."""
    try:
        args = parse_args(argv)
    except UsageError as e:
        print(e)
        print()
        print(HELP_TEXT, end="")
        sys.exit(1)

    interface = None if args.all else args.interface

    try:
        lines = list(ifshow_stream(interface))
    except OSError as e:
        print(f"ifshow: {e.strerror or e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n--- ifshow interrupted ---")
        sys.exit(130)

    try:
        for line in lines:
            print(line, end="", flush=True)
    except BrokenPipeError:
        # reader went away (e.g. piped into head)
        _silence_stdout()
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n--- ifshow interrupted ---")
        sys.exit(130)

    sys.exit(0)


if __name__ == "__main__":
    main()
