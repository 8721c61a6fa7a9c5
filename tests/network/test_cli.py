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
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from secroute.common.common import RESPONSE_OK
from secroute.communication.common import CapacityExceededError, PartiallyAppliedError
from secroute.config.common import SOCKET_PATH
from secroute.network.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.parametrize("args, expected", [
    (["route", "add", "wlan0", "2001:db8::", "64"],
     {"action": "add_route", "interface": "wlan0", "destination": "2001:db8::", "prefix": 64, "gateway": "::"}),
    (["route", "remove", "wlan0", "0.0.0.0", "0", "192.168.1.1"],
     {"action": "remove_route", "interface": "wlan0", "destination": "0.0.0.0", "prefix": 0,
      "gateway": "192.168.1.1"}),
    (["fwmark", "add", "rmnet0"], {"action": "add_fwmark_rule", "interface": "rmnet0"}),
    (["uid", "remove", "rmnet0", "10000", "10999"],
     {"action": "remove_uid_rule", "interface": "rmnet0", "uid_start": 10000, "uid_end": 10999}),
    (["from-rule", "add", "rmnet0", "10.0.0.1"],
     {"action": "add_from_rule", "interface": "rmnet0", "address": "10.0.0.1"}),
    (["local-route", "remove", "rmnet0", "10.0.0.0/24"],
     {"action": "remove_local_route", "interface": "rmnet0", "address": "10.0.0.0/24"}),
])
@patch('secroute.network.cli.query_socket')
def test_commands_send_requests(mock_query, runner, args, expected):
    mock_query.return_value = {"status": RESPONSE_OK}
    result = runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert result.output == f"{RESPONSE_OK}\n"
    mock_query.assert_called_once_with(expected, SOCKET_PATH)


@patch('secroute.network.cli.query_socket')
def test_socket_option(mock_query, runner):
    mock_query.return_value = {"status": RESPONSE_OK}
    runner.invoke(cli, ["--socket", "/tmp/other.sock", "fwmark", "remove", "rmnet0"])
    assert mock_query.call_args.args[1] == Path("/tmp/other.sock")


@pytest.mark.parametrize("exc, text", [
    (CapacityExceededError("All 10 tables are in use"), "FAILED: No table slots available: All 10 tables are in use"),
    (PartiallyAppliedError("NAT rule failed"), "FAILED: Operation failed: NAT rule failed"),
])
@patch('secroute.network.cli.query_socket')
def test_failure_is_reported(mock_query, runner, exc, text):
    mock_query.side_effect = exc
    result = runner.invoke(cli, ["fwmark", "add", "rmnet0"])
    assert result.exit_code == 1
    assert text in result.output


@patch('secroute.network.cli.query_socket')
def test_unreachable_daemon(mock_query, runner):
    mock_query.side_effect = FileNotFoundError(2, "No such file or directory")
    result = runner.invoke(cli, ["show"])
    assert result.exit_code == 1
    assert "Cannot reach secondary table daemon" in result.output


@patch('secroute.network.cli.query_socket')
def test_show(mock_query, runner):
    mock_query.return_value = {
        "status": RESPONSE_OK,
        "tables": [{"slot": 0, "interface": "wlan0", "table": 60, "rule_count": 2}],
        "uid_marks": [],
    }
    result = runner.invoke(cli, ["show"])
    assert result.exit_code == 0
    assert "interface=wlan0 table=60 rules=2" in result.output
    assert "(none)" in result.output


def test_invalid_action_is_rejected_by_click(runner):
    result = runner.invoke(cli, ["fwmark", "enable", "rmnet0"])
    assert result.exit_code == 2
