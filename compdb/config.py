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
"""Recorder configuration from a logger parameter string and the environment.

The parameter string uses the MSBuild logger convention of comma separated
key=value pairs, e.g. ``path=out\\compile_commands.json,task=Clang,log=``.
Keys are case-insensitive. Recognized keys:

    path=<file>     Output database path (default: compile_commands.json)
    task=<text>     Also record tasks whose name contains this text
    log=<file>      Diagnostic log destination; empty means compile_commands.log,
                    a value starting with "stdout" logs to standard output
    merge=<policy>  "overwrite" (default) or "skip-existing"
"""

import os
import logging
from typing import Mapping, Optional
from dataclasses import dataclass

from compdb.constants import (
    COMPILE_COMMANDS_JSON,
    COMPILER_TASK_NAMES,
    DEFAULT_LOG_FILE,
    ENV_COMPILE_COMMANDS_LOG_PATH,
    ENV_COMPILE_COMMANDS_PATH,
    ENV_LOG_STDOUT,
    MERGE_OVERWRITE,
    MERGE_POLICIES,
    STDOUT_LOG_DESTINATION,
    ConfigurationError,
)

logger = logging.getLogger(__name__)

__all__ = ["RecorderConfig"]


@dataclass
class RecorderConfig:
    """Settings for one recording run.

    Attributes:
        output_path: Compilation database to load and write
        custom_task: Extra task name substring treated as a compiler task
        log_path: Diagnostic log destination (None disables the log)
        merge_policy: How repeated (directory, file) keys are merged
    """

    output_path: str = COMPILE_COMMANDS_JSON
    custom_task: Optional[str] = None
    log_path: Optional[str] = None
    merge_policy: str = MERGE_OVERWRITE

    @property
    def logs_to_stdout(self) -> bool:
        return self.log_path is not None and self.log_path.lower().startswith(STDOUT_LOG_DESTINATION)

    def is_compiler_task(self, task_name: str) -> bool:
        """Check whether a task name denotes a compiler invocation."""
        if task_name in COMPILER_TASK_NAMES:
            return True
        return bool(self.custom_task) and self.custom_task in task_name

    @classmethod
    def from_parameters(cls, parameters: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "RecorderConfig":
        """Build a configuration from a parameter string and environment.

        Environment variables are applied first so that explicit parameters
        win, except MSBUILD_LOG_STDOUT=true which always routes the log to
        standard output.

        Args:
            parameters: Comma separated key=value settings
            environ: Environment mapping (default: os.environ)

        Returns:
            Resolved configuration

        Raises:
            ConfigurationError: If a setting is unknown or has an invalid value
        """
        if environ is None:
            environ = os.environ

        config = cls()

        env_output = environ.get(ENV_COMPILE_COMMANDS_PATH)
        if env_output:
            config.output_path = env_output

        env_log = environ.get(ENV_COMPILE_COMMANDS_LOG_PATH)
        if env_log:
            config.log_path = env_log

        if parameters:
            for setting in parameters.split(","):
                config._apply_setting(setting)

        if environ.get(ENV_LOG_STDOUT, "").lower() == "true":
            config.log_path = STDOUT_LOG_DESTINATION

        logger.debug("Recorder configuration: %s", config)
        return config

    def _apply_setting(self, setting: str) -> None:
        key, sep, value = setting.partition("=")
        key = key.lower()

        if not sep:
            raise ConfigurationError(f"Unknown argument in compile command logger: {setting}")

        if key == "path":
            if not value:
                raise ConfigurationError("Empty output path in compile command logger parameters")
            self.output_path = value
        elif key == "task":
            self.custom_task = value or None
        elif key == "log":
            self.log_path = value or DEFAULT_LOG_FILE
        elif key == "merge":
            policy = value.lower()
            if policy not in MERGE_POLICIES:
                raise ConfigurationError(f"Unknown merge policy '{value}', expected one of: {', '.join(MERGE_POLICIES)}")
            self.merge_policy = policy
        else:
            raise ConfigurationError(f"Unknown argument in compile command logger: {setting}")
