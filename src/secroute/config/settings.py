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
Settings of secondary table daemon read from toml file.

Example /etc/secroute/secroute.toml:

    interfaces_tracked = 10
    base_table_number = 60
    ip_path = "/sbin/ip"
    socket_group = "netadmin"
"""
from __future__ import annotations

# Standard imports
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

# Third party imports
import toml

# Local imports
from secroute.common.logger import Logger
from secroute.communication.common import InvalidConfigError
from secroute.config.common import SECROUTE_CONFIG_DIR, SOCKET_PATH
from secroute.config.configfiles import ConfigFiles
from secroute.network.common import (
    BASE_TABLE_NUMBER,
    INTERFACES_TRACKED,
    IP6TABLES_PATH,
    IP_PATH,
    IPTABLES_PATH,
    RESERVED_TABLE_NUMBERS,
)

logger = Logger(__name__)

config_files: ConfigFiles = ConfigFiles()
SETTINGS_FILE = config_files.add("secroute.toml", "secroute.toml", config_dir_root=SECROUTE_CONFIG_DIR)


@dataclass(frozen=True)
class Settings:
    interfaces_tracked: int = INTERFACES_TRACKED
    base_table_number: int = BASE_TABLE_NUMBER
    ip_path: str = IP_PATH
    iptables_path: str = IPTABLES_PATH
    ip6tables_path: str = IP6TABLES_PATH
    socket_path: Path = SOCKET_PATH
    socket_group: Optional[str] = None

    def validate(self) -> None:
        if self.interfaces_tracked < 1:
            raise InvalidConfigError(f"interfaces_tracked must be positive, got {self.interfaces_tracked}")
        if self.base_table_number < 1:
            raise InvalidConfigError(f"base_table_number must be positive, got {self.base_table_number}")
        last_table = self.base_table_number + self.interfaces_tracked - 1
        if last_table >= RESERVED_TABLE_NUMBERS.start:
            raise InvalidConfigError(
                f"Tables {self.base_table_number}-{last_table} collide with reserved tables "
                f"{RESERVED_TABLE_NUMBERS.start}-{RESERVED_TABLE_NUMBERS.stop - 1}"
            )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Settings:
        known = {field.name: field for field in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in raw.items():
            if key not in known:
                raise InvalidConfigError(f"Unknown setting '{key}'")
            if key in ("interfaces_tracked", "base_table_number"):
                # bool is int subclass, but true/false is surely a typo here
                if not isinstance(value, int) or isinstance(value, bool):
                    raise InvalidConfigError(f"Setting '{key}' must be an integer")
            elif not isinstance(value, str) or not value:
                raise InvalidConfigError(f"Setting '{key}' must be a non empty string")
            values[key] = Path(value) if key == "socket_path" else value
        settings = cls(**values)
        settings.validate()
        return settings


def load_settings(path: Path = SETTINGS_FILE) -> Settings:
    try:
        text = path.read_text()
    except FileNotFoundError:
        logger.warning(f"The file '{path}' does not exist, using default settings.")
        return Settings()
    try:
        raw = toml.loads(text)
    except toml.decoder.TomlDecodeError as exc:
        raise InvalidConfigError(f"Cannot parse {path}: {exc}")
    return Settings.from_dict(raw)
