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
"""Pytest configuration and shared base fixtures for msvc-compdb tests.

Fixture Scopes:
- function: Default, recreated for each test
- module: Shared across tests in one file, use for immutable data
"""

import sys
import json
import tempfile
import shutil
from pathlib import Path
from typing import Dict, Generator, List
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from compdb.build_events import BuildEvent
from compdb.config import RecorderConfig

COMPILER = r"C:\VS\bin\cl.exe"
PROJECT_FILE = r"C:\src\app\app.vcxproj"
PROJECT_DIR = r"C:\src\app"


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="compdb_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def output_path(temp_dir: str) -> str:
    """Path of a compile_commands.json that does not exist yet."""
    return str(Path(temp_dir) / "compile_commands.json")


@pytest.fixture
def config(output_path: str) -> RecorderConfig:
    """Recorder configuration writing into the temp directory."""
    return RecorderConfig(output_path=output_path)


@pytest.fixture
def empty_environ() -> Dict[str, str]:
    """Environment without INCLUDE or EXTERNAL_INCLUDE."""
    return {}


def make_event(arguments: str, task_name: str = "CL", project_file: str = PROJECT_FILE) -> BuildEvent:
    """Build a compiler task event for `cl.exe <arguments>`."""
    return BuildEvent(task_name=task_name, command_line=f"{COMPILER} {arguments}", project_file=project_file)


@pytest.fixture
def sample_events() -> List[BuildEvent]:
    """A small build: two compiler invocations, a link step and an unrelated task.

    Scope: function
    Use for: Recorder and script level tests
    """
    return [
        make_event("/c /nologo /I include /D NDEBUG /Yupch.h main.cpp util.cpp"),
        make_event("/c /TC legacy.txt"),
        BuildEvent(task_name="Link", command_line=r"C:\VS\bin\link.exe main.obj util.obj", project_file=PROJECT_FILE),
        BuildEvent(task_name="Message", command_line="echo done", project_file=PROJECT_FILE),
    ]


@pytest.fixture
def events_file(temp_dir: str, sample_events: List[BuildEvent]) -> str:
    """Write sample_events as a JSON Lines file and return its path."""
    path = Path(temp_dir) / "events.jsonl"
    with open(path, "w", encoding="utf-8") as f:
        for event in sample_events:
            f.write(json.dumps({"taskName": event.task_name, "commandLine": event.command_line, "projectFile": event.project_file}) + "\n")
    return str(path)
