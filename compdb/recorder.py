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
"""Driver that turns build events into a compilation database.

CompileCommandsRecorder owns all run state: configuration, the database, the
accumulated environment include directories and the diagnostic log. Events
are processed one at a time, synchronously; the database is written once in
shutdown().

Typical use:

    recorder = CompileCommandsRecorder(RecorderConfig.from_parameters("path=out.json"))
    recorder.run(read_build_events(stream))
"""

import os
import sys
import ntpath
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from compdb.build_events import BuildEvent
from compdb.color_utils import print_info, print_warning
from compdb.compile_db import CompilationDatabase, CompileCommand
from compdb.config import RecorderConfig
from compdb.constants import INCLUDE_ENV_VARS, STDOUT_LOG_DESTINATION, DatabaseError, TokenizeError
from compdb.invocation import build_arguments, build_compile_commands, classify_tokens
from compdb.tokenizer import resolve_compiler_path, split_compiler_invocation, tokenize

logger = logging.getLogger(__name__)

# Trace of every classified invocation, only emitted when a log destination is configured
diagnostics = logging.getLogger("compdb.diagnostics")

__all__ = ["CompileCommandsRecorder", "open_diagnostic_log", "close_diagnostic_log"]


def open_diagnostic_log(destination: str) -> logging.Handler:
    """Attach a handler for the diagnostic trace.

    Args:
        destination: File path, or a value starting with "stdout"

    Returns:
        The attached handler, to be passed to close_diagnostic_log()

    Raises:
        DatabaseError: If the log file cannot be created
    """
    handler: logging.Handler
    if destination.lower().startswith(STDOUT_LOG_DESTINATION):
        handler = logging.StreamHandler(sys.stdout)
    else:
        print_info(f"Using {destination} for logging")
        try:
            handler = logging.FileHandler(destination, mode="w", encoding="utf-8")
        except OSError as e:
            raise DatabaseError(f"Failed to create {destination}: {e}") from e

    handler.setFormatter(logging.Formatter("%(message)s"))
    diagnostics.addHandler(handler)
    diagnostics.setLevel(logging.DEBUG)
    diagnostics.propagate = False
    return handler


def close_diagnostic_log(handler: logging.Handler) -> None:
    diagnostics.removeHandler(handler)
    handler.close()
    if not diagnostics.handlers:
        diagnostics.setLevel(logging.NOTSET)
        diagnostics.propagate = True


class CompileCommandsRecorder:
    """Accumulates compile commands from a stream of build events.

    Attributes:
        config: Run configuration
        database: Compilation database, available after initialize()
        environment_includes: Include directories gathered from the environment,
            in first-seen order; never shrinks during a run
    """

    def __init__(self, config: Optional[RecorderConfig] = None, environ: Optional[Mapping[str, str]] = None):
        self.config = config if config is not None else RecorderConfig()
        self._environ = environ if environ is not None else os.environ
        self.database: Optional[CompilationDatabase] = None
        # dict keeps insertion order and deduplicates
        self._include_lookup: Dict[str, bool] = {}
        self._log_handler: Optional[logging.Handler] = None

    @property
    def environment_includes(self) -> List[str]:
        return list(self._include_lookup)

    def initialize(self) -> None:
        """Open the diagnostic log and load the existing database.

        Raises:
            DatabaseError: If the database cannot be parsed or the output
                location cannot be created
        """
        output_path = self.config.output_path
        output_dir = os.path.dirname(os.path.abspath(output_path))
        if not os.path.isdir(output_dir):
            raise DatabaseError(f"Failed to create {output_path}: directory {output_dir} does not exist")
        if os.path.exists(output_path) and not os.access(output_path, os.W_OK):
            raise DatabaseError(f"Failed to create {output_path}: file is not writable")

        if self.config.log_path:
            self._log_handler = open_diagnostic_log(self.config.log_path)

        try:
            self.database = CompilationDatabase.load(output_path, merge_policy=self.config.merge_policy)
        except DatabaseError:
            self.abort()
            raise

    def refresh_environment_includes(self) -> None:
        """Add include directories from INCLUDE and EXTERNAL_INCLUDE."""
        for env_var in INCLUDE_ENV_VARS:
            value = self._environ.get(env_var)
            if value is None:
                continue
            for path in value.split(";"):
                if path and path not in self._include_lookup:
                    self._include_lookup[path] = True
            diagnostics.debug("*** %s %s", env_var, value)

    def commands_for_event(self, event: BuildEvent) -> List[CompileCommand]:
        """Classify one compiler task command line without touching the database.

        Raises:
            CompilerMarkerError: If the command line does not invoke cl.exe
            TokenizeError: If the argument string cannot be split
        """
        compiler, argument_string = split_compiler_invocation(event.command_line)
        tokens = tokenize(argument_string)
        invocation = classify_tokens(tokens)

        compiler = resolve_compiler_path(compiler)
        environment_includes = self.environment_includes
        commands = build_compile_commands(compiler, ntpath.dirname(event.project_file), invocation, environment_includes)

        diagnostics.debug("*** Arguments %s", " ".join(build_arguments(compiler, invocation, environment_includes)))
        diagnostics.debug("*** MaybeFilenames %s", " ".join(invocation.maybe_filenames))
        diagnostics.debug("*** Filenames %s", " ".join(invocation.filenames))
        return commands

    def handle_event(self, event: BuildEvent) -> int:
        """Process one build event.

        Args:
            event: Build event from the event stream

        Returns:
            Number of database entries appended or overwritten

        Raises:
            CompilerMarkerError: If a compiler task does not invoke cl.exe
        """
        if self.database is None:
            raise RuntimeError("initialize() must be called before handle_event()")

        self.refresh_environment_includes()

        if not self.config.is_compiler_task(event.task_name):
            diagnostics.debug("*** Skipping task %s", event.task_name)
            return 0

        try:
            commands = self.commands_for_event(event)
        except TokenizeError as e:
            print_warning(f"Skipping {event.task_name} invocation in {event.project_file}: {e}")
            return 0

        changed = 0
        for command in commands:
            if self.database.merge(command):
                changed += 1
        return changed

    def shutdown(self) -> None:
        """Write the database and close the diagnostic log."""
        try:
            if self.database is not None:
                self.database.save(self.config.output_path)
                logger.info("Wrote %s compile commands to %s", len(self.database), self.config.output_path)
        finally:
            if self._log_handler is not None:
                close_diagnostic_log(self._log_handler)
                self._log_handler = None

    def abort(self) -> None:
        """Close the diagnostic log without writing the database."""
        if self._log_handler is not None:
            close_diagnostic_log(self._log_handler)
            self._log_handler = None

    def run(self, events: Iterable[BuildEvent]) -> CompilationDatabase:
        """Initialize, process every event and write the database.

        Any exception aborts the run before anything is written.

        Returns:
            The final database
        """
        self.initialize()
        try:
            for event in events:
                self.handle_event(event)
        except BaseException:
            self.abort()
            raise

        self.shutdown()
        assert self.database is not None
        return self.database
