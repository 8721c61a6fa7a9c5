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
import pytest

from secroute.communication.common import CapacityExceededError, InvalidParameterError
from secroute.network.common import BASE_TABLE_NUMBER, INTERFACES_TRACKED, MAX_INTERFACE_NAME_LENGTH
from secroute.network.table_slots import TableSlotRegistry


def test_allocate_uses_first_free_slot_in_order(slots):
    assert slots.allocate("wlan0") == 0
    assert slots.allocate("rmnet0") == 1
    assert slots.table_number(1) == BASE_TABLE_NUMBER + 1


def test_allocate_returns_existing_slot_unchanged(slots):
    index = slots.allocate("wlan0")
    slots.adjust_rule_count(index, 1)
    assert slots.allocate("wlan0") == index
    assert slots.rule_count(index) == 1


def test_allocate_beyond_capacity_fails_and_keeps_previous_slots():
    slots = TableSlotRegistry()
    names = [f"eth{i}" for i in range(INTERFACES_TRACKED)]
    for name in names:
        slots.allocate(name)
    with pytest.raises(CapacityExceededError):
        slots.allocate("eth_extra")
    assert [slot.interface_name for _, slot in slots.occupied()] == names
    assert slots.find_slot("eth_extra") is None


def test_allocate_empty_name_is_invalid(slots):
    with pytest.raises(InvalidParameterError):
        slots.allocate("")


def test_find_slot_does_not_match_prefix_of_stored_name(slots):
    slots.allocate("eth0")
    assert slots.find_slot("eth") is None
    assert slots.find_slot("eth00") is None
    assert slots.find_slot("eth0") == 0


def test_find_empty_name_returns_first_free_slot(slots):
    slots.allocate("eth0")
    slots.allocate("eth1")
    slots.adjust_rule_count(0, -1)
    assert slots.find_slot("") == 0


def test_long_name_is_truncated_on_allocation(slots):
    long_name = "x" * (MAX_INTERFACE_NAME_LENGTH + 4)
    index = slots.allocate(long_name)
    assert slots.interface_name(index) == "x" * MAX_INTERFACE_NAME_LENGTH


def test_long_name_allocated_twice_shares_slot(slots):
    long_name = "x" * (MAX_INTERFACE_NAME_LENGTH + 2)
    first = slots.allocate(long_name)
    slots.adjust_rule_count(first, 1)
    second = slots.allocate(long_name)
    assert first == second
    assert [index for index, _ in slots.occupied()] == [first]
    assert slots.find_slot(long_name) == first


def test_long_name_lookup_matches_bounded_prefix_only(slots):
    index = slots.allocate("y" * (MAX_INTERFACE_NAME_LENGTH + 2))
    assert slots.find_slot("y" * MAX_INTERFACE_NAME_LENGTH) == index
    assert slots.find_slot("y" * (MAX_INTERFACE_NAME_LENGTH - 1)) is None


@pytest.mark.parametrize("slot_index, expected", [(-1, False), (0, True), (1, False), (INTERFACES_TRACKED, False)])
def test_verify(slots, slot_index, expected):
    slots.allocate("wlan0")
    assert slots.verify(slot_index) is expected


@pytest.mark.parametrize("adds, removes", [(1, 1), (3, 1), (5, 5), (4, 0)])
def test_rule_count_follows_adds_and_removes(slots, adds, removes):
    index = slots.allocate("wlan0")
    for _ in range(adds):
        slots.adjust_rule_count(index, 1)
    for _ in range(removes):
        slots.adjust_rule_count(index, -1)
    assert slots.rule_count(index) == adds - removes
    assert slots.verify(index) is (adds - removes > 0)


def test_decrement_at_zero_frees_slot_without_going_negative(slots):
    index = slots.allocate("wlan0")
    slots.adjust_rule_count(index, -1)
    assert slots.rule_count(index) == 0
    assert slots.interface_name(index) == ""
    slots.adjust_rule_count(index, -1)
    assert slots.rule_count(index) == 0


def test_adjust_by_other_than_one_is_refused(slots):
    index = slots.allocate("wlan0")
    with pytest.raises(ValueError):
        slots.adjust_rule_count(index, 2)


def test_release_if_unused_keeps_referenced_slot(slots):
    index = slots.allocate("wlan0")
    slots.adjust_rule_count(index, 1)
    slots.release_if_unused(index)
    assert slots.verify(index)
    slots.adjust_rule_count(index, -1)
    slots.allocate("wlan0")
    slots.release_if_unused(index)
    assert not slots.verify(index)


def test_custom_capacity_and_base():
    slots = TableSlotRegistry(capacity=2, base_table_number=100)
    assert slots.capacity == 2
    slots.allocate("a")
    assert slots.table_number(slots.allocate("b")) == 101
    with pytest.raises(CapacityExceededError):
        slots.allocate("c")
