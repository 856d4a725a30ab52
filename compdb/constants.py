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
"""Shared constants for the compile commands recorder.

This module provides centralized constants used across the recorder modules
and the command line script so that option tables, defaults and exit codes
live in one place.
"""

from typing import FrozenSet, Tuple

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Output Defaults
# =============================================================================

COMPILE_COMMANDS_JSON = "compile_commands.json"  # Standard compilation database filename
DEFAULT_LOG_FILE = "compile_commands.log"  # Used when "log=" is given without a value
STDOUT_LOG_DESTINATION = "stdout"  # Log destinations starting with this go to standard output
JSON_INDENT = 2

# =============================================================================
# Environment Variables
# =============================================================================

ENV_COMPILE_COMMANDS_PATH = "COMPILE_COMMANDS_PATH"  # Overrides the output path
ENV_COMPILE_COMMANDS_LOG_PATH = "COMPILE_COMMANDS_LOG_PATH"  # Sets the diagnostic log path
ENV_LOG_STDOUT = "MSBUILD_LOG_STDOUT"  # "true" routes the diagnostic log to stdout

# Semicolon separated include directories appended to every invocation
INCLUDE_ENV_VARS: Tuple[str, ...] = ("INCLUDE", "EXTERNAL_INCLUDE")

# =============================================================================
# Build Event Filtering
# =============================================================================

COMPILER_TASK_NAMES: FrozenSet[str] = frozenset({"CL", "TrackedExec"})
COMPILER_MARKER = "cl.exe"

# =============================================================================
# Merge Policies
# =============================================================================

MERGE_OVERWRITE = "overwrite"  # Replace an existing entry with the same directory and file
MERGE_SKIP_EXISTING = "skip-existing"  # Never touch an entry that is already recorded
MERGE_POLICIES: Tuple[str, ...] = (MERGE_OVERWRITE, MERGE_SKIP_EXISTING)

# =============================================================================
# MSVC Option Tables
# =============================================================================

# Options whose value is always the following token
OPTIONS_WITH_PARAM: FrozenSet[str] = frozenset(
    {
        "D",
        "I",
        "F",
        "U",
        "FI",
        "FU",
        "analyze:log",
        "analyze:stacksize",
        "analyze:max_paths",
        "analyze:ruleset",
        "analyze:plugin",
    }
)

PCH_OPTIONS: Tuple[str, ...] = ("Yc", "Yu")  # Create / use precompiled header
FORCED_SOURCE_OPTIONS: Tuple[str, ...] = ("Tc", "Tp")  # Compile one file as C / C++
ALL_SOURCES_OPTIONS: FrozenSet[str] = frozenset({"TC", "TP"})  # Compile every file as C / C++
LINK_OPTION = "link"

OPTION_PREFIXES: Tuple[str, ...] = ("/", "-")
RESPONSE_FILE_PREFIX = "@"
INCLUDE_OPTION = "/I"

SOURCE_EXTENSIONS: FrozenSet[str] = frozenset({"c", "cxx", "cpp"})

# =============================================================================
# Exception Classes
# =============================================================================


class CompileCommandsError(Exception):
    """Base exception for all compile commands recorder errors.

    All exceptions carry an exit_code attribute that indicates what exit code
    the program should use when this error is caught at the main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(CompileCommandsError):
    """Raised when input validation fails (arguments, parameters, events)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ConfigurationError(ValidationError):
    """Raised when the recorder parameter string contains an unknown or invalid setting."""


class EventStreamError(ValidationError):
    """Raised when a build event cannot be decoded."""


# Runtime errors (EXIT_RUNTIME_ERROR)
class DatabaseError(CompileCommandsError):
    """Raised when the compilation database cannot be read, created or written."""


class CompilerMarkerError(CompileCommandsError):
    """Raised when a compiler task command line does not name cl.exe.

    This means the task filter matched something that is not a compiler
    invocation, so the whole run is aborted.
    """


class TokenizeError(CompileCommandsError):
    """Raised when a command line cannot be split into arguments."""
