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
# Daemon owning secondary routing tables. All requests are served one by one.

# Standard imports
import json
import logging
import sys
from enum import Enum
from typing import Any, Dict, Mapping, Optional

# Local imports
from secroute.common.common import RESPONSE_OK, RuleAction
from secroute.common.logger import Logger
from secroute.communication.common import InvalidPayloadError
from secroute.communication.message_parser import (
    get_interface_name,
    get_ip46_str,
    get_ip46_str_with_optional_mask,
    get_prefix_length,
    get_str,
    get_str_with_default,
    get_uid,
)
from secroute.communication.socket_daemon import SOCKET_RETURN_TYPE, SocketDaemon
from secroute.config.settings import Settings, config_files, load_settings
from secroute.network.common import UNSPECIFIED_GATEWAY
from secroute.network.secondary_table import SecondaryTableController
from secroute.network.uid_mark_map import UidMarkMap

logger = Logger(f"{sys.argv[0] if __name__ == '__main__' else __name__}")


# TODO switch to StrEnum when we move to Python 3.11
class TableAction(str, Enum):
    ADD_ROUTE = "add_route"
    REMOVE_ROUTE = "remove_route"
    ADD_FWMARK_RULE = "add_fwmark_rule"
    REMOVE_FWMARK_RULE = "remove_fwmark_rule"
    ADD_UID_RULE = "add_uid_rule"
    REMOVE_UID_RULE = "remove_uid_rule"
    ADD_FROM_RULE = "add_from_rule"
    REMOVE_FROM_RULE = "remove_from_rule"
    ADD_LOCAL_ROUTE = "add_local_route"
    REMOVE_LOCAL_ROUTE = "remove_local_route"
    SHOW = "show"


def _route_params(message: Mapping[str, Any]) -> Dict[str, Any]:
    destination = get_ip46_str(message, "destination")
    gateway = get_str_with_default(message, "gateway", default=UNSPECIFIED_GATEWAY)
    if gateway != UNSPECIFIED_GATEWAY:
        get_ip46_str(message, "gateway")
    return {
        "interface": get_interface_name(message, "interface"),
        "destination": destination,
        "prefix": get_prefix_length(message, "prefix", is_ipv6=":" in destination),
        "gateway": gateway,
    }


def _uid_params(message: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "interface": get_interface_name(message, "interface"),
        "uid_start": get_uid(message, "uid_start"),
        "uid_end": get_uid(message, "uid_end"),
    }


class SecondaryTableSocketDaemon(SocketDaemon):
    def __init__(self, controller: SecondaryTableController, settings: Settings, logger: logging.Logger) -> None:
        super().__init__(settings.socket_path, logger, socket_group=settings.socket_group)
        self.controller = controller

    def handle_message(self, message: bytes) -> SOCKET_RETURN_TYPE:
        try:
            decoded_message = json.loads(message)
        except ValueError as exc:
            raise InvalidPayloadError(f"Message is not valid JSON: {exc}")
        if not isinstance(decoded_message, dict):
            raise InvalidPayloadError("Message must be a JSON object")
        action = get_str(decoded_message, "action")
        self.logger.info(f"Handling {action}")
        response: Dict[str, Any] = {"status": RESPONSE_OK}
        match action:
            case TableAction.ADD_ROUTE:
                self.controller.add_route(**_route_params(decoded_message))
            case TableAction.REMOVE_ROUTE:
                self.controller.remove_route(**_route_params(decoded_message))
            case TableAction.ADD_FWMARK_RULE:
                self.controller.add_fwmark_rule(get_interface_name(decoded_message, "interface"))
            case TableAction.REMOVE_FWMARK_RULE:
                self.controller.remove_fwmark_rule(get_interface_name(decoded_message, "interface"))
            case TableAction.ADD_UID_RULE:
                self.controller.add_uid_rule(**_uid_params(decoded_message))
            case TableAction.REMOVE_UID_RULE:
                self.controller.remove_uid_rule(**_uid_params(decoded_message))
            case TableAction.ADD_FROM_RULE | TableAction.REMOVE_FROM_RULE:
                self.controller.modify_from_rule_of(
                    get_interface_name(decoded_message, "interface"),
                    RuleAction.from_bool(action == TableAction.ADD_FROM_RULE),
                    get_ip46_str_with_optional_mask(decoded_message, "address"),
                )
            case TableAction.ADD_LOCAL_ROUTE | TableAction.REMOVE_LOCAL_ROUTE:
                self.controller.modify_local_route_of(
                    get_interface_name(decoded_message, "interface"),
                    RuleAction.from_bool(action == TableAction.ADD_LOCAL_ROUTE),
                    get_ip46_str_with_optional_mask(decoded_message, "address"),
                )
            case TableAction.SHOW:
                response.update(self.controller.dump())
            case _:
                raise InvalidPayloadError(f"Unrecognized action '{action}' received by secondary table daemon")
        return response


def main(settings: Optional[Settings] = None) -> None:
    try:
        config_files.verify()
        if settings is None:
            settings = load_settings()
    except Exception as exc:
        logger.exception(exc)
        if config_files.is_debug_mode_enabled():
            raise
        settings = Settings()
    controller = SecondaryTableController.from_settings(settings, UidMarkMap())
    controller.setup_iptables_hooks()
    SecondaryTableSocketDaemon(controller, settings, logger).run()


if __name__ == "__main__":
    main()
