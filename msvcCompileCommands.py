#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Record a compile_commands.json from MSVC compiler task events.

This script reads build events (one JSON object per line, as captured from an
MSBuild logger) and reconstructs a Clang compilation database with one entry
per compiled source file. An existing database at the output path is loaded
and merged; the result is written once, after every event has been processed.

Requirements:
    - Python 3.8+
    - colorama, packaging

Usage:
    msvcCompileCommands.py [events.jsonl|-] [--parameters "path=...,task=...,log=...,merge=..."]

Event format:
    {"taskName": "CL", "commandLine": "C:\\VS\\bin\\cl.exe /c /DFOO main.cpp", "projectFile": "C:\\src\\app.vcxproj"}

Environment:
    COMPILE_COMMANDS_PATH       Output database path
    COMPILE_COMMANDS_LOG_PATH   Diagnostic log path
    MSBUILD_LOG_STDOUT=true     Diagnostic log to standard output
    INCLUDE, EXTERNAL_INCLUDE   Include directories appended to every entry

Exit Codes:
    0: Success
    1: Invalid arguments, parameters or build events
    2: Database or compiler command line error
    130: Interrupted
"""

import os
import sys
import signal
import logging
import argparse
from typing import Any, List, Optional

__version__ = "1.0.0"
__author__ = "Mana Battery"

from compdb.build_events import read_build_events
from compdb.color_utils import Colors, print_error, print_success, print_warning, should_use_color
from compdb.config import RecorderConfig
from compdb.constants import (
    EXIT_SUCCESS,
    EXIT_INVALID_ARGS,
    EXIT_RUNTIME_ERROR,
    EXIT_KEYBOARD_INTERRUPT,
    CompileCommandsError,
)
from compdb.package_verification import check_all_packages
from compdb.recorder import CompileCommandsRecorder

# Export for tests
__all__ = ["EXIT_SUCCESS", "main", "build_parser"]


def signal_handler(signum: int, frame: Any) -> None:
    """Handle interrupt signals gracefully."""
    print_warning("\nInterrupted by user. Exiting...", prefix=False)
    sys.exit(EXIT_KEYBOARD_INTERRUPT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Record a compile_commands.json from MSVC compiler task events.",
        epilog=f"Version {__version__}\n\nExamples:\n"
        f"  %(prog)s events.jsonl\n"
        f'  %(prog)s events.jsonl --parameters "path=build\\compile_commands.json,task=ClangCl"\n'
        f'  msbuild-event-dump | %(prog)s - -p "log=stdout,merge=skip-existing"\n',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("events", nargs="?", default="-", help="JSON Lines file with build events, or - for stdin (default: -)")

    parser.add_argument(
        "--parameters", "-p", default=None, metavar="PARAMS", help="Comma separated settings: path=<file>, task=<name>, log=<file|stdout>, merge=<overwrite|skip-existing>"
    )

    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output to stderr")

    parser.add_argument("--check-packages", action="store_true", help="Verify runtime package versions and exit")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the script.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    args = build_parser().parse_args(argv)

    if not should_use_color(no_color=args.no_color):
        Colors.disable()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s: %(message)s")

    if args.check_packages:
        return EXIT_SUCCESS if check_all_packages() else EXIT_RUNTIME_ERROR

    try:
        config = RecorderConfig.from_parameters(args.parameters)
    except CompileCommandsError as e:
        print_error(str(e))
        return e.exit_code

    if args.events != "-" and not os.path.isfile(args.events):
        print_error(f"Build event file not found: {args.events}")
        return EXIT_INVALID_ARGS

    recorder = CompileCommandsRecorder(config)

    try:
        if args.events == "-":
            database = recorder.run(read_build_events(sys.stdin))
        else:
            with open(args.events, "r", encoding="utf-8") as f:
                database = recorder.run(read_build_events(f))
    except CompileCommandsError as e:
        print_error(str(e))
        return e.exit_code
    except OSError as e:
        print_error(f"Cannot read build events from '{args.events}': {e}")
        return EXIT_RUNTIME_ERROR

    print_success(f"Wrote {len(database)} compile commands to {config.output_path}", prefix=False)
    return EXIT_SUCCESS


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print_warning("Interrupted.", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
    except CompileCommandsError as e:
        print_error(str(e))
        sys.exit(e.exit_code)


if __name__ == "__main__":
    run()
