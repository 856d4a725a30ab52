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
"""In-memory compilation database with load, merge and atomic save."""

import os
import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple
from dataclasses import dataclass, field

from compdb.constants import JSON_INDENT, MERGE_OVERWRITE, MERGE_POLICIES, MERGE_SKIP_EXISTING, DatabaseError

logger = logging.getLogger(__name__)

__all__ = ["CompileCommand", "CompilationDatabase"]

# Optional compilation database keys kept when a loaded entry is written back
_PRESERVED_KEYS = ("command", "output")


@dataclass
class CompileCommand:
    """One entry of compile_commands.json.

    Attributes:
        directory: Project directory the compiler ran in
        file: Source file name as it appeared on the command line
        arguments: Compiler executable, flags and finally the file itself
        extra: Other standard keys carried over from a loaded database
    """

    directory: str
    file: str
    arguments: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.directory, self.file)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the key order directory, arguments, file.

        Entries loaded with only a "command" string are written back without
        an empty "arguments" list, which tools would otherwise prefer.
        """
        data: Dict[str, Any] = {"directory": self.directory}
        if self.arguments or "command" not in self.extra:
            data["arguments"] = list(self.arguments)
        data["file"] = self.file
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "CompileCommand":
        """Build a command from a decoded JSON object.

        Raises:
            DatabaseError: If the object lacks directory or file
        """
        if not isinstance(data, dict):
            raise DatabaseError(f"Invalid compilation database entry: expected object, got {type(data).__name__}")

        directory = data.get("directory")
        file = data.get("file")
        if not isinstance(directory, str) or not isinstance(file, str):
            raise DatabaseError(f"Invalid compilation database entry, directory and file are required: {data}")

        arguments = data.get("arguments", [])
        if not isinstance(arguments, list) or not all(isinstance(arg, str) for arg in arguments):
            raise DatabaseError(f"Invalid arguments for {file}: expected list of strings, got {arguments!r}")

        extra = {key: data[key] for key in _PRESERVED_KEYS if key in data}
        return cls(directory=directory, file=file, arguments=list(arguments), extra=extra)


class CompilationDatabase:
    """Ordered list of compile commands indexed by (directory, file).

    Entries are never removed. Merging a command whose key is already present
    either overwrites the stored entry in place or leaves it untouched,
    depending on the merge policy.
    """

    def __init__(self, commands: Optional[List[CompileCommand]] = None, merge_policy: str = MERGE_OVERWRITE):
        if merge_policy not in MERGE_POLICIES:
            raise ValueError(f"Unknown merge policy: {merge_policy}")

        self.merge_policy = merge_policy
        self._commands: List[CompileCommand] = []
        self._lookup: Dict[Tuple[str, str], CompileCommand] = {}
        for command in commands or []:
            self._insert(command)

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[CompileCommand]:
        return iter(self._commands)

    def __contains__(self, key: object) -> bool:
        return key in self._lookup

    def get(self, directory: str, file: str) -> Optional[CompileCommand]:
        return self._lookup.get((directory, file))

    def _insert(self, command: CompileCommand) -> None:
        if command.key in self._lookup:
            raise DatabaseError(f"Duplicate compilation database entry for {command.file} in {command.directory}")
        self._commands.append(command)
        self._lookup[command.key] = command

    def merge(self, command: CompileCommand) -> bool:
        """Merge a freshly classified command into the database.

        Args:
            command: Command produced from a build event

        Returns:
            True if the database changed (entry appended or overwritten)
        """
        existing = self._lookup.get(command.key)
        if existing is None:
            self._commands.append(command)
            self._lookup[command.key] = command
            return True

        if self.merge_policy == MERGE_SKIP_EXISTING:
            logger.debug("Keeping existing entry for %s", command.file)
            return False

        existing.directory = command.directory
        existing.file = command.file
        existing.arguments = list(command.arguments)
        existing.extra = {}
        return True

    def to_json(self) -> str:
        return json.dumps([command.to_dict() for command in self._commands], indent=JSON_INDENT)

    @classmethod
    def load(cls, path: str, merge_policy: str = MERGE_OVERWRITE) -> "CompilationDatabase":
        """Load an existing database, or start empty if the file is absent.

        Args:
            path: Path to compile_commands.json
            merge_policy: Policy applied to later merges

        Returns:
            Loaded database

        Raises:
            DatabaseError: If the file exists but cannot be read or parsed
        """
        if not os.path.exists(path):
            logger.debug("No existing compilation database at %s, starting empty", path)
            return cls(merge_policy=merge_policy)

        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                text = f.read()
        except OSError as e:
            raise DatabaseError(f"Failed to read {path}: {e}") from e

        # An empty file deserializes to nothing, the same as a missing one
        if not text.strip():
            return cls(merge_policy=merge_policy)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Failed to parse {path}: {e}") from e

        if data is None:
            return cls(merge_policy=merge_policy)
        if not isinstance(data, list):
            raise DatabaseError(f"Invalid compilation database format in {path}: expected list, got {type(data).__name__}")

        database = cls([CompileCommand.from_dict(entry) for entry in data], merge_policy=merge_policy)
        logger.info("Loaded %s existing compile commands from %s", len(database), path)
        return database

    def save(self, path: str) -> None:
        """Write the database, replacing the file atomically.

        Uses atomic write (temp file + rename) so an interrupted save never
        leaves a truncated database behind.

        Raises:
            DatabaseError: If the file cannot be written
        """
        temp_path = path + ".tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(self.to_json())
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    logger.debug("Could not remove temporary file %s", temp_path)
            raise DatabaseError(f"Failed to write {path}: {e}") from e

        logger.debug("Saved %s compile commands to %s", len(self), path)
