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
# Standard imports
import sys
from pathlib import Path
from typing import Union

# Local imports
from secroute.common.logger import Logger
from secroute.config.common import CONFIG_DIR_ROOT, SECROUTE_CONFIG_DIR

logger = Logger(f"{sys.argv[0] if __name__ == '__main__' else __name__}")


class ConfigFiles(dict[str, tuple[Path, bool]]):
    def add(self, name: str, path: Union[str, Path], *,
            config_dir_root: Path = CONFIG_DIR_ROOT,
            is_expected: bool = True) -> Path:
        if name in self:
            raise ValueError(f"config file {name} already added")
        path = config_dir_root / path
        self[name] = (path, is_expected)
        return path

    def is_debug_mode_enabled(self) -> bool:
        if 'debug_mode' not in self:
            self.add("debug_mode", "debug_enable", config_dir_root=SECROUTE_CONFIG_DIR, is_expected=False)
        return self["debug_mode"][0].exists()

    def verify(self) -> None:
        missing_file = False
        # Normally we will just log missing files (defaults are used instead),
        # but in debug mode we throw exception and prevent daemon from starting
        for name, (path, is_expected) in self.items():
            if is_expected and not path.exists():
                missing_file = True
                logger.error(f"Missing config path for {name}: {path}")
        if missing_file and self.is_debug_mode_enabled():
            raise RuntimeError("Expected config files missing in debug mode")
