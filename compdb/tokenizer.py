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
"""Splitting of logged MSVC command lines into argument vectors.

The splitting rules are those of CommandLineToArgvW, implemented in pure
Python so the result does not depend on the host operating system:

1. Arguments are delimited by white space, which is either a space or a tab.
2. A string surrounded by double quotation marks is interpreted as a single
   argument, regardless of white space contained within.
3. 2n backslashes followed by a double quotation mark produce n backslashes
   and toggle quoting.
4. 2n+1 backslashes followed by a double quotation mark produce n
   backslashes and a literal double quotation mark.
5. Backslashes are interpreted literally, unless they immediately precede a
   double quotation mark.
6. Inside a quoted string, two double quotation marks in a row produce one
   literal double quotation mark and end the quoted string.

Flag detection downstream depends on tokens being split exactly where the
compiler itself would split them.
"""

import os
import re
import ntpath
from typing import List, Tuple

from compdb.constants import COMPILER_MARKER, CompilerMarkerError, TokenizeError

__all__ = ["normalize_command_line", "split_command_line", "tokenize", "split_compiler_invocation", "resolve_compiler_path"]

_WHITESPACE_RE = re.compile(r"\s+")
_ARG_DELIMITERS = (" ", "\t")

# cl.exe followed by white space, optionally closing a quoted compiler path
_COMPILER_MARKER_RE = re.compile(re.escape(COMPILER_MARKER) + r'"?\s', re.IGNORECASE)


def normalize_command_line(command_line: str) -> str:
    """Flatten a logged command line onto one line.

    Newlines, carriage returns and tabs become spaces, trailing white space is
    dropped and white space runs collapse to a single space, so multi-line
    logged commands tokenize the same as single-line ones.

    Args:
        command_line: Raw command line as logged by the build system

    Returns:
        Normalized command line
    """
    flattened = command_line.replace("\n", " ").replace("\r", " ").replace("\t", " ").rstrip()
    return _WHITESPACE_RE.sub(" ", flattened)


def split_command_line(command_line: str) -> List[str]:
    """Split a command line into arguments using CommandLineToArgvW rules.

    Args:
        command_line: Command line without the program name

    Returns:
        List of arguments in order
    """
    args: List[str] = []
    length = len(command_line)
    i = 0

    while i < length:
        while i < length and command_line[i] in _ARG_DELIMITERS:
            i += 1
        if i >= length:
            break

        current: List[str] = []
        in_quotes = False

        while i < length:
            char = command_line[i]

            if char in _ARG_DELIMITERS and not in_quotes:
                break

            if char == "\\":
                start = i
                while i < length and command_line[i] == "\\":
                    i += 1
                backslashes = i - start
                if i < length and command_line[i] == '"':
                    current.append("\\" * (backslashes // 2))
                    if backslashes % 2:
                        current.append('"')
                        i += 1
                    # Even count: the quote is handled as a toggle on the next iteration
                else:
                    current.append("\\" * backslashes)
                continue

            if char == '"':
                if in_quotes and i + 1 < length and command_line[i + 1] == '"':
                    current.append('"')
                    i += 2
                    in_quotes = False
                    continue
                in_quotes = not in_quotes
                i += 1
                continue

            current.append(char)
            i += 1

        args.append("".join(current))

    return args


def tokenize(command_line: str) -> List[str]:
    """Normalize and split a compiler argument string.

    Args:
        command_line: Argument string following the compiler executable

    Returns:
        List of argument tokens

    Raises:
        TokenizeError: If the command line holds no arguments at all
    """
    normalized = normalize_command_line(command_line)
    if not normalized.strip():
        raise TokenizeError("Cannot split an empty command line into arguments")

    return split_command_line(normalized)


def split_compiler_invocation(command_line: str) -> Tuple[str, str]:
    """Separate the compiler executable from its arguments.

    The marker is the first case-insensitive occurrence of cl.exe followed by
    white space. Everything before and including it is the compiler, with
    surrounding quotes removed.

    Args:
        command_line: Full command line of a compiler task

    Returns:
        Tuple of (compiler_path, argument_string)

    Raises:
        CompilerMarkerError: If the command line does not invoke cl.exe
    """
    match = _COMPILER_MARKER_RE.search(command_line)
    if match is None:
        raise CompilerMarkerError(f"Unexpected lack of CL.exe in {command_line}")

    marker_end = match.start() + len(COMPILER_MARKER)
    compiler = command_line[:marker_end].strip().strip('"')
    return compiler, command_line[match.end() :]


def resolve_compiler_path(compiler: str) -> str:
    """Return an absolute path for the compiler executable.

    Drive-qualified Windows paths are normalized as Windows paths on every
    platform. Anything else is made absolute against the working directory.

    Args:
        compiler: Compiler path as it appeared on the command line

    Returns:
        Absolute compiler path
    """
    drive, _ = ntpath.splitdrive(compiler)
    if drive:
        return ntpath.normpath(compiler)
    return os.path.abspath(compiler)
