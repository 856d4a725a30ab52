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
"""Classification of cl.exe argument tokens into compile commands.

A single left-to-right pass sorts every token into one of:

- parameterized options kept verbatim together with their value (/D, /I, ...)
- precompiled header directives (/Yc, /Yu) whose header becomes an include hint
- forced source files (/Tc, /Tp) added straight to the file list
- the sticky "everything is a source" switches (/TC, /TP)
- the /link marker, which ends classification
- other options and response files, which are dropped
- positional arguments, which are candidate source files

Candidates are promoted to source files after the pass, once it is known
whether /TC or /TP was seen.
"""

import ntpath
import logging
from typing import Iterable, List, Sequence
from dataclasses import dataclass, field

from compdb.compile_db import CompileCommand
from compdb.constants import (
    ALL_SOURCES_OPTIONS,
    FORCED_SOURCE_OPTIONS,
    INCLUDE_OPTION,
    LINK_OPTION,
    OPTION_PREFIXES,
    OPTIONS_WITH_PARAM,
    PCH_OPTIONS,
    RESPONSE_FILE_PREFIX,
    SOURCE_EXTENSIONS,
)

logger = logging.getLogger(__name__)

__all__ = ["ClassifiedInvocation", "is_option", "has_source_extension", "classify_tokens", "synthesize_include_args", "build_arguments", "build_compile_commands"]


@dataclass
class ClassifiedInvocation:
    """Parse state of one compiler invocation.

    Attributes:
        passthrough_args: Tokens kept verbatim in every argument vector
        filenames: Resolved source files, in the order they were found
        maybe_filenames: Positional tokens that may or may not be sources
        pch_headers: Headers named by /Yc or /Yu
        all_sources: True once /TC or /TP was seen
    """

    passthrough_args: List[str] = field(default_factory=list)
    filenames: List[str] = field(default_factory=list)
    maybe_filenames: List[str] = field(default_factory=list)
    pch_headers: List[str] = field(default_factory=list)
    all_sources: bool = False

    def add_pch_header(self, header: str) -> None:
        header = header.strip('"')
        if header:
            self.pch_headers.append(header)


def is_option(token: str) -> bool:
    return token.startswith(OPTION_PREFIXES)


def has_source_extension(filename: str) -> bool:
    """Check whether the text after the last dot is c, cxx or cpp (any case)."""
    suffix_pos = filename.rfind(".")
    if suffix_pos == -1:
        return False
    return filename[suffix_pos + 1 :].lower() in SOURCE_EXTENSIONS


def classify_tokens(tokens: Sequence[str]) -> ClassifiedInvocation:
    """Sort the argument tokens of one cl.exe invocation.

    Args:
        tokens: Arguments following the compiler executable

    Returns:
        Classified invocation with resolved filenames
    """
    result = ClassifiedInvocation()
    count = len(tokens)
    i = 0

    while i < count:
        token = tokens[i]
        i += 1

        if not is_option(token):
            if token.startswith(RESPONSE_FILE_PREFIX):
                logger.debug("Ignoring response file %s", token)
            else:
                result.maybe_filenames.append(token)
            continue

        option = token[1:]

        if option in OPTIONS_WITH_PARAM:
            result.passthrough_args.append(token)
            if i < count:
                result.passthrough_args.append(tokens[i])
                i += 1
        elif option in PCH_OPTIONS:
            if i < count and not is_option(tokens[i]):
                result.add_pch_header(tokens[i])
                i += 1
        elif option.startswith(PCH_OPTIONS):
            result.add_pch_header(option[2:])
        elif option in FORCED_SOURCE_OPTIONS:
            if i < count:
                result.filenames.append(tokens[i])
                i += 1
        elif option.startswith(FORCED_SOURCE_OPTIONS):
            result.filenames.append(option[2:])
        elif option in ALL_SOURCES_OPTIONS:
            result.all_sources = True
        elif option == LINK_OPTION:
            break
        else:
            logger.debug("Ignoring option %s", token)

    for filename in result.maybe_filenames:
        if result.all_sources or has_source_extension(filename):
            result.filenames.append(filename)

    return result


def synthesize_include_args(pch_headers: Iterable[str], environment_includes: Iterable[str]) -> List[str]:
    """Derive the /I arguments appended after the passthrough options.

    A precompiled header named with a directory gets that directory added to
    the include path. Every environment include directory follows, in order.

    Args:
        pch_headers: Headers named by /Yc or /Yu
        environment_includes: Accumulated include directories from the environment

    Returns:
        List of /I arguments
    """
    include_args = []
    for header in pch_headers:
        if "\\" in header or "/" in header:
            directory = ntpath.dirname(header)
            if directory:
                include_args.append(INCLUDE_OPTION + directory)

    include_args.extend(INCLUDE_OPTION + path for path in environment_includes)
    return include_args


def build_arguments(compiler: str, invocation: ClassifiedInvocation, environment_includes: Iterable[str] = ()) -> List[str]:
    """Return the argument vector shared by every file of an invocation, without the file itself."""
    return [compiler] + invocation.passthrough_args + synthesize_include_args(invocation.pch_headers, environment_includes)


def build_compile_commands(compiler: str, directory: str, invocation: ClassifiedInvocation, environment_includes: Iterable[str] = ()) -> List[CompileCommand]:
    """Build one compile command per resolved source file.

    Args:
        compiler: Absolute path of the compiler executable
        directory: Directory of the project that ran the compiler
        invocation: Result of classify_tokens
        environment_includes: Accumulated include directories from the environment

    Returns:
        List of compile commands, one per filename
    """
    arguments = build_arguments(compiler, invocation, environment_includes)

    return [CompileCommand(directory=directory, file=filename, arguments=arguments + [filename]) for filename in invocation.filenames]
