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
from __future__ import annotations

# Standard imports
from enum import Enum

RESPONSE_OK = "OK"
RESPONSE_FAILURE = "FAILED:"


# TODO switch to StrEnum when we move to Python 3.11
class RuleAction(str, Enum):
    """Verb passed to `ip rule` and `ip route`."""
    ADD = "add"
    DEL = "del"

    @classmethod
    def from_bool(cls, add: bool) -> RuleAction:
        return cls.ADD if add else cls.DEL

    @property
    def delta(self) -> int:
        return 1 if self is RuleAction.ADD else -1

    @property
    def iptables_flag(self) -> str:
        return "-A" if self is RuleAction.ADD else "-D"
