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
Fixed size pool of table slots.

Slot position determines kernel routing table number (position +
base_table_number), so the same interface gets the same table as long as its
slot stays referenced, and a slot position is never shared by two interfaces.
Slot is free iff its interface name is empty. Lookup is a linear scan which
returns the first matching slot --- allocation order is therefore
deterministic: lowest free position wins.
"""
from __future__ import annotations

# Standard imports
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

# Local imports
from secroute.common.logger import Logger
from secroute.communication.common import CapacityExceededError, InvalidParameterError
from secroute.network.common import BASE_TABLE_NUMBER, INTERFACES_TRACKED, MAX_INTERFACE_NAME_LENGTH

logger = Logger(__name__)


def bound_interface_name(interface_name: str) -> str:
    return interface_name[:MAX_INTERFACE_NAME_LENGTH]


@dataclass
class Slot:
    interface_name: str = ""
    rule_count: int = 0

    @property
    def is_free(self) -> bool:
        return not self.interface_name

    def clear(self) -> None:
        self.interface_name = ""
        self.rule_count = 0


class TableSlotRegistry:
    def __init__(self, capacity: int = INTERFACES_TRACKED, base_table_number: int = BASE_TABLE_NUMBER):
        self.base_table_number = base_table_number
        self._slots: List[Slot] = [Slot() for _ in range(capacity)]

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def table_number(self, slot_index: int) -> int:
        return slot_index + self.base_table_number

    def find_slot(self, interface_name: str) -> Optional[int]:
        """
        Returns position of slot holding exactly interface_name or None.

        Names are bounded to MAX_INTERFACE_NAME_LENGTH the same way as on
        allocation, so an over-long name finds the slot it was stored in.
        Empty interface_name finds the first free slot.
        """
        bounded_name = bound_interface_name(interface_name)
        for index, slot in enumerate(self._slots):
            if slot.interface_name == bounded_name:
                return index
        return None

    def allocate(self, interface_name: str) -> int:
        if not interface_name:
            raise InvalidParameterError("Interface name must not be empty")
        index = self.find_slot(interface_name)
        if index is not None:
            return index
        index = self.find_slot("")
        if index is None:
            logger.error(f"Max number of NATed interfaces reached, cannot allocate table for {interface_name}")
            raise CapacityExceededError(f"All {self.capacity} tables are in use, cannot add {interface_name}")
        slot = self._slots[index]
        slot.interface_name = bound_interface_name(interface_name)
        slot.rule_count = 0
        logger.debug(f"Allocated table {self.table_number(index)} for {slot.interface_name}")
        return index

    def verify(self, slot_index: int) -> bool:
        return 0 <= slot_index < self.capacity and not self._slots[slot_index].is_free

    def adjust_rule_count(self, slot_index: int, delta: int) -> None:
        """
        Adds delta (+1 or -1) to rule count of slot.

        Decrement below 1 frees the slot instead of making count negative.
        Removals are allowed even at zero count, as some removals are done
        for interfaces which might be already gone.
        """
        if delta not in (1, -1):
            raise ValueError(f"Rule count can be changed by 1 or -1, not {delta}")
        slot = self._slots[slot_index]
        if delta > 0:
            slot.rule_count += 1
            return
        slot.rule_count -= 1
        if slot.rule_count < 1:
            logger.debug(f"Table {self.table_number(slot_index)} of {slot.interface_name} is no longer used")
            slot.clear()

    def release_if_unused(self, slot_index: int) -> None:
        slot = self._slots[slot_index]
        if slot.rule_count == 0 and not slot.is_free:
            logger.debug(f"Releasing unreferenced table {self.table_number(slot_index)} of {slot.interface_name}")
            slot.clear()

    def interface_name(self, slot_index: int) -> str:
        return self._slots[slot_index].interface_name

    def rule_count(self, slot_index: int) -> int:
        return self._slots[slot_index].rule_count

    def occupied(self) -> Iterator[Tuple[int, Slot]]:
        for index, slot in enumerate(self._slots):
            if not slot.is_free:
                yield index, slot
