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
"""Build events fed to the recorder.

Events are read as JSON Lines, one object per line:

    {"taskName": "CL", "commandLine": "C:\\VS\\bin\\cl.exe /c main.cpp", "projectFile": "C:\\src\\app\\app.vcxproj"}

Blank lines are skipped. "projectFilePath" is accepted as an alias of
"projectFile".
"""

import json
from typing import Iterator, TextIO
from dataclasses import dataclass

from compdb.constants import EventStreamError

__all__ = ["BuildEvent", "read_build_events"]


@dataclass(frozen=True)
class BuildEvent:
    """A task command line reported by the build system."""

    task_name: str
    command_line: str
    project_file: str

    @classmethod
    def from_dict(cls, data: dict) -> "BuildEvent":
        fields = {
            "taskName": data.get("taskName"),
            "commandLine": data.get("commandLine"),
            "projectFile": data.get("projectFile", data.get("projectFilePath")),
        }
        for name, value in fields.items():
            if not isinstance(value, str):
                raise ValueError(f"missing or non-string '{name}'")
        return cls(task_name=fields["taskName"], command_line=fields["commandLine"], project_file=fields["projectFile"])


def read_build_events(stream: TextIO) -> Iterator[BuildEvent]:
    """Yield build events from a JSON Lines stream.

    Args:
        stream: Text stream with one JSON object per line

    Yields:
        BuildEvent for every non-blank line

    Raises:
        EventStreamError: If a line is not a valid event object
    """
    for line_number, line in enumerate(stream, start=1):
        if not line.strip():
            continue

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise EventStreamError(f"Invalid JSON in build event on line {line_number}: {e}") from e

        if not isinstance(data, dict):
            raise EventStreamError(f"Build event on line {line_number} is not an object")

        try:
            event = BuildEvent.from_dict(data)
        except ValueError as e:
            raise EventStreamError(f"Invalid build event on line {line_number}: {e}") from e

        yield event
