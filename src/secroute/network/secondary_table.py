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
Secondary routing tables bound to network interfaces.

Each interface which needs its own routing table gets a slot in
TableSlotRegistry; the slot position gives the table number, which is also
used as the fwmark of that interface's packets. Every route or rule pointing
to the table counts as a reference, and the slot is freed as soon as the last
reference is removed.

All operations are synchronous and hold controller lock for the whole
sequence: resolve/allocate slot, run ip/iptables, update rule count.

Known inconsistency window: in fwmark rule handling the `ip rule` is not rolled
back if the following NAT rule fails --- PartiallyAppliedError is raised and
the table stays referenced by the rule which is present in kernel.

UID marks are not counted as table references. When the last route or rule of
an interface is removed its slot is freed even if uid ranges are still marked
with its table number; a warning naming those ranges is logged and the mangle
rules stay in place until the uid rules are removed. Such rules cannot be
removed through the interface name anymore once the slot is reused or freed.
"""
from __future__ import annotations

# Standard imports
import sys
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol

# Local imports
from secroute.common.common import RuleAction
from secroute.common.logger import Logger
from secroute.communication.common import (
    ExternalCommandFailedError,
    InterfaceNotFoundError,
    InvalidParameterError,
    PartiallyAppliedError,
)
from secroute.communication.process import CommandExecutor, IpTarget, SubprocessExecutor, exec_iptables
from secroute.communication.status_codes import SUCCESS
from secroute.config.settings import Settings
from secroute.network.common import (
    IP6TABLES_PATH,
    IP_PATH,
    IPTABLES_PATH,
    LOCAL_MANGLE_OUTPUT,
    LOCAL_NAT_POSTROUTING,
    UNSPECIFIED_GATEWAY,
)
from secroute.network.table_slots import TableSlotRegistry

logger = Logger(f"{sys.argv[0] if __name__ == '__main__' else __name__}")


class UidMarkRegistry(Protocol):
    def add(self, uid_start: int, uid_end: int, mark: int) -> bool: ...

    def remove(self, uid_start: int, uid_end: int, mark: int) -> bool: ...

    def entries(self) -> List[Any]: ...


def get_version(address: str) -> str:
    return "-6" if ":" in address else "-4"


class SecondaryTableController:
    def __init__(self,
                 uid_mark_map: UidMarkRegistry,
                 executor: Optional[CommandExecutor] = None,
                 *,
                 slots: Optional[TableSlotRegistry] = None,
                 ip_path: str = IP_PATH,
                 iptables_path: str = IPTABLES_PATH,
                 ip6tables_path: str = IP6TABLES_PATH):
        self.uid_mark_map = uid_mark_map
        self.executor = executor if executor is not None else SubprocessExecutor(logger)
        self.slots = slots if slots is not None else TableSlotRegistry()
        self.ip_path = ip_path
        self.iptables_path = iptables_path
        self.ip6tables_path = ip6tables_path
        # Reentrant, as interface based variants of from/local rules call slot based ones
        self.lock = RLock()

    @classmethod
    def from_settings(cls, settings: Settings, uid_mark_map: UidMarkRegistry,
                      executor: Optional[CommandExecutor] = None) -> SecondaryTableController:
        return cls(uid_mark_map, executor,
                   slots=TableSlotRegistry(settings.interfaces_tracked, settings.base_table_number),
                   ip_path=settings.ip_path,
                   iptables_path=settings.iptables_path,
                   ip6tables_path=settings.ip6tables_path)

    def _ip(self, *args: str) -> int:
        return self.executor.run((self.ip_path, *args))

    def _iptables(self, target: IpTarget, *args: str) -> int:
        return exec_iptables(self.executor, target, *args,
                             iptables=self.iptables_path, ip6tables=self.ip6tables_path)

    def _table_str(self, slot_index: int) -> str:
        return str(self.slots.table_number(slot_index))

    def _adjust_rule_count(self, slot_index: int, delta: int) -> None:
        table_number = self.slots.table_number(slot_index)
        self.slots.adjust_rule_count(slot_index, delta)
        if delta > 0 or self.slots.verify(slot_index):
            return
        # uid marks do not keep a table alive
        stranded = [entry for entry in self.uid_mark_map.entries() if entry.mark == table_number]
        if stranded:
            logger.warning(f"Table {table_number} was freed while uid ranges "
                           f"{', '.join(f'{e.uid_start}-{e.uid_end}' for e in stranded)} "
                           f"are still marked with {table_number}")

    # Routes

    def add_route(self, interface: str, destination: str, prefix: int, gateway: str) -> None:
        with self.lock:
            slot_index = self.slots.allocate(interface)
            self._modify_route(RuleAction.ADD, interface, destination, prefix, gateway, slot_index)

    def remove_route(self, interface: str, destination: str, prefix: int, gateway: str) -> None:
        with self.lock:
            slot_index = self.slots.find_slot(interface)
            if slot_index is None:
                logger.error(f"Interface {interface} not found")
                raise InterfaceNotFoundError(f"No table is assigned to {interface}")
            self._modify_route(RuleAction.DEL, interface, destination, prefix, gateway, slot_index)

    def _modify_route(self, action: RuleAction, interface: str, destination: str, prefix: int,
                      gateway: str, slot_index: int) -> None:
        table = self._table_str(slot_index)
        argv = [self.ip_path, "route", action.value, f"{destination}/{prefix}"]
        # compared as string on purpose, e.g. "0::0" is a regular gateway here
        if gateway != UNSPECIFIED_GATEWAY:
            argv += ["via", gateway]
        argv += ["dev", interface, "table", table]
        returncode = self.executor.run(argv)
        if returncode != SUCCESS:
            logger.error(f"ip route {action.value} failed: {' '.join(argv)}")
            self.slots.release_if_unused(slot_index)
            raise ExternalCommandFailedError("ip route modification failed", argv, returncode)
        self._adjust_rule_count(slot_index, action.delta)

    # Source rules and local routes

    def modify_from_rule(self, slot_index: int, action: RuleAction, address: str) -> None:
        with self.lock:
            if not self.slots.verify(slot_index):
                raise InvalidParameterError(f"Invalid table slot {slot_index}")
            table = self._table_str(slot_index)
            argv = [self.ip_path, get_version(address), "rule", action.value, "from", address, "table", table]
            returncode = self.executor.run(argv)
            if returncode != SUCCESS:
                logger.error(f"ip rule {action.value} failed: {' '.join(argv)}")
                raise ExternalCommandFailedError("ip rule modification failed", argv, returncode)
            self._adjust_rule_count(slot_index, action.delta)

    def modify_local_route(self, slot_index: int, action: RuleAction, interface: str, address: str) -> None:
        """
        Adds/removes route to interface's own address in its table.

        Rule count is changed before the command is run and regardless of its
        result --- removals are expected to fail sometimes as the interface may
        be already gone, and the table must be freed anyway.
        """
        with self.lock:
            if not self.slots.verify(slot_index):
                raise InvalidParameterError(f"Invalid table slot {slot_index}")
            table = self._table_str(slot_index)
            self._adjust_rule_count(slot_index, action.delta)
            argv = [self.ip_path, "route", action.value, address, "dev", interface, "table", table]
            returncode = self.executor.run(argv)
            if returncode != SUCCESS:
                logger.warning(f"ip route {action.value} failed: {' '.join(argv)}")
                raise ExternalCommandFailedError("local route modification failed", argv, returncode)

    def _slot_of(self, interface: str) -> int:
        slot_index = self.slots.find_slot(interface)
        # unknown interface is reported as invalid slot, same as bad slot index
        return -1 if slot_index is None else slot_index

    def modify_from_rule_of(self, interface: str, action: RuleAction, address: str) -> None:
        with self.lock:
            self.modify_from_rule(self._slot_of(interface), action, address)

    def modify_local_route_of(self, interface: str, action: RuleAction, address: str) -> None:
        with self.lock:
            self.modify_local_route(self._slot_of(interface), action, interface, address)

    # Fwmark rules with NAT

    def add_fwmark_rule(self, interface: str) -> None:
        self.set_fwmark_rule(interface, True)

    def remove_fwmark_rule(self, interface: str) -> None:
        self.set_fwmark_rule(interface, False)

    def set_fwmark_rule(self, interface: str, add: bool) -> None:
        action = RuleAction.from_bool(add)
        with self.lock:
            slot_index = self.slots.allocate(interface)
            # mark and table number are the same value
            mark = self._table_str(slot_index)
            argv = [self.ip_path, "rule", action.value, "fwmark", mark, "table", mark]
            returncode = self.executor.run(argv)
            if returncode != SUCCESS:
                logger.error(f"ip rule {action.value} failed: {' '.join(argv)}")
                self.slots.release_if_unused(slot_index)
                raise ExternalCommandFailedError("ip rule modification failed", argv, returncode)
            self._adjust_rule_count(slot_index, action.delta)

            # Kernels without IPv6 NAT support (< 3.7) are common, so only v4 is masqueraded
            nat_args = ("-t", "nat", action.iptables_flag, LOCAL_NAT_POSTROUTING, "-o", interface,
                        "-m", "mark", "--mark", mark, "-j", "MASQUERADE")
            if self._iptables(IpTarget.V4, *nat_args) != SUCCESS:
                logger.error(f"NAT rule {action.value} failed for {interface} (mark {mark}); "
                             f"ip rule fwmark {mark} was {'added' if add else 'removed'} and is left as is")
                raise PartiallyAppliedError(f"ip rule for mark {mark} applied, but NAT rule failed",
                                            (self.iptables_path, *nat_args))

    # UID marking

    def add_uid_rule(self, interface: str, uid_start: int, uid_end: int) -> None:
        self.set_uid_rule(interface, uid_start, uid_end, True)

    def remove_uid_rule(self, interface: str, uid_start: int, uid_end: int) -> None:
        self.set_uid_rule(interface, uid_start, uid_end, False)

    def set_uid_rule(self, interface: str, uid_start: int, uid_end: int, add: bool) -> None:
        action = RuleAction.from_bool(add)
        with self.lock:
            slot_index = self.slots.find_slot(interface)
            if slot_index is None:
                raise InvalidParameterError(f"Interface {interface} has no table to mark packets for")
            if uid_start < 0 or uid_start > uid_end:
                raise InvalidParameterError(f"Invalid uid range {uid_start}-{uid_end}")
            mark = self.slots.table_number(slot_index)
            if add:
                accepted = self.uid_mark_map.add(uid_start, uid_end, mark)
            else:
                accepted = self.uid_mark_map.remove(uid_start, uid_end, mark)
            if not accepted:
                raise InvalidParameterError(
                    f"Cannot {'add' if add else 'remove'} mark {mark} for uid range {uid_start}-{uid_end}"
                )
            iptables_args = ("-t", "mangle", action.iptables_flag, LOCAL_MANGLE_OUTPUT,
                             "-m", "owner", "--uid-owner", f"{uid_start}-{uid_end}",
                             "-j", "MARK", "--set-mark", str(mark))
            if self._iptables(IpTarget.V4V6, *iptables_args) != SUCCESS:
                logger.error(f"Marking of uid range {uid_start}-{uid_end} failed ({action.value})")
                raise ExternalCommandFailedError("uid mark rule modification failed", (self.iptables_path, *iptables_args))

    # Startup and inspection

    def setup_iptables_hooks(self) -> None:
        """(Re)creates child chains used by this controller and hooks them into builtin ones."""
        hooks = (
            (IpTarget.V4V6, "mangle", "OUTPUT", LOCAL_MANGLE_OUTPUT),
            (IpTarget.V4, "nat", "POSTROUTING", LOCAL_NAT_POSTROUTING),
        )
        with self.lock:
            for target, table, parent, child in hooks:
                # Chain may not exist yet (first start), hence results are ignored
                self._iptables(target, "-t", table, "-D", parent, "-j", child)
                self._iptables(target, "-t", table, "-F", child)
                self._iptables(target, "-t", table, "-X", child)
                for args in (("-t", table, "-N", child), ("-t", table, "-A", parent, "-j", child)):
                    if self._iptables(target, *args) != SUCCESS:
                        logger.error(f"Cannot hook {child} into {table} {parent}")
                        raise ExternalCommandFailedError(f"Cannot set up chain {child}", args)
            logger.info("Secondary table iptables hooks are set up")

    def dump(self) -> Dict[str, List[Dict[str, Any]]]:
        with self.lock:
            tables = [
                {
                    "slot": index,
                    "interface": slot.interface_name,
                    "table": self.slots.table_number(index),
                    "rule_count": slot.rule_count,
                }
                for index, slot in self.slots.occupied()
            ]
        uid_marks = [entry._asdict() for entry in self.uid_mark_map.entries()]
        return {"tables": tables, "uid_marks": uid_marks}
