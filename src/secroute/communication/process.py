#
# Copyright (c) 2025 Contributors to the Eclipse Foundation.
#
# See the NOTICE file(s) distributed with this work for additional
# information regarding copyright ownership.
#
# This program and the accompanying materials are made available under the
# terms of the Apache License, Version 2.0 which is available at
# https://www.apache.org/licenses/LICENSE-2.0
#
# SPDX-License-Identifier: Apache-2.0
#
"""
Simple logging wrappers over execution of ip and iptables tools.
"""
from __future__ import annotations

# Standard imports
import logging
import shlex
import subprocess
from enum import Enum
from typing import Any, Protocol, Sequence

# Local imports
from secroute.common.logger import Logger
from secroute.communication.status_codes import FAILURE, SUCCESS
from secroute.network.common import IP6TABLES_PATH, IPTABLES_PATH

_logger = Logger(__name__)


def run_command(
    command: str, *args: Any,
    logger: logging.Logger = _logger,
    capture_output: bool = True,
    **kwargs: Any,
) -> subprocess.CompletedProcess[bytes]:
    """
    Logs command, runs it, throws on bad exit satus.
    """
    result = run_command_unchecked(command, *args, logger=logger, capture_output=capture_output, **kwargs)
    result.check_returncode()
    return result


def run_command_unchecked(
    command: str,
    *args: Any,
    logger: logging.Logger = _logger,
    capture_output: bool = True,
    **kwargs: Any
) -> subprocess.CompletedProcess[bytes]:
    """
    Logs command and runs it.

    Beware --- caller needs to check status himself (hence _unchecked in name).
    """
    splitted_command = shlex.split(command)
    logger.info(f"Will execute: {(*splitted_command, *args)}")
    logger.debug(f"capture_output={capture_output}, kwargs {kwargs}")
    return subprocess.run((*splitted_command, *args), capture_output=capture_output, shell=False, **kwargs)


class CommandExecutor(Protocol):
    def run(self, argv: Sequence[str]) -> int:
        """Runs argv (no shell involved) and returns its exit status."""


class SubprocessExecutor:
    def __init__(self, logger: logging.Logger = _logger) -> None:
        self.logger = logger

    def run(self, argv: Sequence[str]) -> int:
        result = run_command_unchecked(shlex.quote(argv[0]), *argv[1:], logger=self.logger)
        if result.returncode != SUCCESS:
            self.logger.warning(f"{argv[0]} exited with {result.returncode}: {result.stderr!r}")
        return result.returncode


class IpTarget(Enum):
    V4 = (True, False)
    V6 = (False, True)
    V4V6 = (True, True)

    @property
    def binaries(self) -> tuple[bool, bool]:
        return self.value


def exec_iptables(executor: CommandExecutor, target: IpTarget, *args: str,
                  iptables: str = IPTABLES_PATH, ip6tables: str = IP6TABLES_PATH) -> int:
    """
    Runs the same rule through iptables and/or ip6tables.

    For V4V6 both tools are always executed, so a failing v4 call does not
    prevent the v6 one. Returns SUCCESS only if every executed call succeeded.
    """
    use_v4, use_v6 = target.binaries
    status = SUCCESS
    if use_v4 and executor.run((iptables, *args)) != SUCCESS:
        status = FAILURE
    if use_v6 and executor.run((ip6tables, *args)) != SUCCESS:
        status = FAILURE
    return status
