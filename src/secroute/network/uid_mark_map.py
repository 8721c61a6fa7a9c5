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
Registry of UID ranges whose packets are marked for routing.

Ranges never overlap, hence each UID is marked with at most one mark.
"""
from __future__ import annotations

# Standard imports
from threading import Lock
from typing import List, NamedTuple

# Local imports
from secroute.common.logger import Logger

logger = Logger(__name__)

DEFAULT_MARK = 0


class UidMarkEntry(NamedTuple):
    uid_start: int
    uid_end: int
    mark: int

    def overlaps(self, uid_start: int, uid_end: int) -> bool:
        return self.uid_start <= uid_end and uid_start <= self.uid_end

    def __str__(self) -> str:
        return f"{self.uid_start}-{self.uid_end}->{self.mark}"


class UidMarkMap:
    def __init__(self) -> None:
        self._entries: List[UidMarkEntry] = []
        self._lock = Lock()

    def add(self, uid_start: int, uid_end: int, mark: int) -> bool:
        if uid_start < 0 or uid_start > uid_end:
            logger.warning(f"Refusing invalid uid range {uid_start}-{uid_end}")
            return False
        with self._lock:
            for entry in self._entries:
                if entry.overlaps(uid_start, uid_end):
                    logger.warning(f"Uid range {uid_start}-{uid_end} overlaps {entry}")
                    return False
            self._entries.append(UidMarkEntry(uid_start, uid_end, mark))
        return True

    def remove(self, uid_start: int, uid_end: int, mark: int) -> bool:
        with self._lock:
            try:
                self._entries.remove(UidMarkEntry(uid_start, uid_end, mark))
            except ValueError:
                logger.warning(f"No uid range {uid_start}-{uid_end} marked with {mark}")
                return False
        return True

    def get_mark(self, uid: int) -> int:
        with self._lock:
            for entry in self._entries:
                if entry.uid_start <= uid <= entry.uid_end:
                    return entry.mark
        return DEFAULT_MARK

    def entries(self) -> List[UidMarkEntry]:
        with self._lock:
            return sorted(self._entries)
