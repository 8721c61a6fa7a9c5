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

import pytest

from secroute.communication.common import InvalidConfigError
from secroute.config.common import SECROUTE_CONFIG_DIR
from secroute.config.configfiles import ConfigFiles
from secroute.config.settings import SETTINGS_FILE, Settings, config_files, load_settings
from secroute.network.common import BASE_TABLE_NUMBER, INTERFACES_TRACKED


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "missing.toml")
    assert settings == Settings()
    assert settings.interfaces_tracked == INTERFACES_TRACKED
    assert settings.base_table_number == BASE_TABLE_NUMBER


def test_values_are_read_from_toml(tmp_path):
    config = tmp_path / "secroute.toml"
    config.write_text('interfaces_tracked = 4\nbase_table_number = 200\n'
                      'ip_path = "/usr/sbin/ip"\nsocket_path = "/tmp/secroute.sock"\n')
    settings = load_settings(config)
    assert settings.interfaces_tracked == 4
    assert settings.base_table_number == 200
    assert settings.ip_path == "/usr/sbin/ip"
    assert settings.socket_path == Path("/tmp/secroute.sock")
    assert settings.socket_group is None


@pytest.mark.parametrize("content", [
    "interfaces_tracked = 0",
    "base_table_number = 0",
    "base_table_number = 250",
    "interfaces_tracked = 200\nbase_table_number = 60",
    'interfaces_tracked = "ten"',
    "interfaces_tracked = true",
    "ip_path = 5",
    'ip_path = ""',
    "unknown_key = 1",
    "interfaces_tracked = ",
])
def test_invalid_config_is_refused(tmp_path, content):
    config = tmp_path / "secroute.toml"
    config.write_text(content + "\n")
    with pytest.raises(InvalidConfigError):
        load_settings(config)


def test_last_table_below_reserved_range_is_accepted():
    Settings(interfaces_tracked=3, base_table_number=250).validate()


def test_settings_file_lives_in_secroute_config_dir():
    assert SETTINGS_FILE == SECROUTE_CONFIG_DIR / "secroute.toml"
    assert config_files["secroute.toml"] == (SETTINGS_FILE, True)


def test_debug_flag_file_lives_in_secroute_config_dir():
    files = ConfigFiles()
    assert files.is_debug_mode_enabled() is (SECROUTE_CONFIG_DIR / "debug_enable").exists()
    assert files["debug_mode"] == (SECROUTE_CONFIG_DIR / "debug_enable", False)
