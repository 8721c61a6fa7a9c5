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
from typing import List
from unittest.mock import Mock

import pytest

from secroute.communication.status_codes import FAILURE, SUCCESS
from secroute.network.secondary_table import SecondaryTableController
from secroute.network.table_slots import TableSlotRegistry
from secroute.network.uid_mark_map import UidMarkMap


def executed(executor: Mock) -> List[List[str]]:
    return [list(call.args[0]) for call in executor.run.call_args_list]


def failing_on(*prefixes):
    """side_effect for executor.run failing commands starting with any of prefixes"""
    def run(argv):
        for prefix in prefixes:
            if tuple(argv[:len(prefix)]) == tuple(prefix):
                return FAILURE
        return SUCCESS
    return run


@pytest.fixture
def executor():
    mock = Mock()
    mock.run.return_value = SUCCESS
    return mock


@pytest.fixture
def uid_mark_map():
    return UidMarkMap()


@pytest.fixture
def slots():
    return TableSlotRegistry()


@pytest.fixture
def controller(executor, uid_mark_map, slots):
    return SecondaryTableController(uid_mark_map, executor, slots=slots)
