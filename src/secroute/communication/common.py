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
Exceptions reported by secondary table controller to its callers.

Every exception carries `response` --- short text identifying the kind of
failure, which is shown to the operator in front of the details.
"""
from __future__ import annotations

# Standard imports
from typing import Sequence


class TableControllerError(RuntimeError):
    response = "Operation failed"


class ExternalCommandFailedError(TableControllerError):
    """Raised when ip or iptables exited with non zero status."""

    def __init__(self, message: str, argv: Sequence[str] = (), returncode: int = 0):
        super().__init__(message)
        self.argv = tuple(argv)
        self.returncode = returncode

    def __reduce__(self):  # type: ignore
        return (type(self), (str(self), self.argv, self.returncode))


class PartiallyAppliedError(ExternalCommandFailedError):
    """
    First command of two command sequence succeeded, second one failed.

    Nothing is rolled back, so the kernel keeps the rule added by the first
    command and the table slot stays referenced.
    """


class InterfaceNotFoundError(TableControllerError):
    response = "Interface not found"


class CapacityExceededError(TableControllerError):
    response = "No table slots available"


class InvalidParameterError(TableControllerError):
    response = "Invalid argument"


class InvalidPayloadError(InvalidParameterError):
    """Message received over socket has wrong shape (missing keys, wrong types)."""


class InvalidConfigError(InvalidParameterError):
    """Configuration file contains values which cannot be used."""


def format_failure(exc: TableControllerError) -> str:
    return f"{exc.response}: {exc}"
