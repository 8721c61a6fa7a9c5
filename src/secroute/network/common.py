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
"""This module contains common constants of secondary routing tables."""

# Number of interfaces which can have its own routing table at the same time
INTERFACES_TRACKED = 10
# Table number of slot 0. Tables 253-255 (default, main, local) are reserved by kernel
BASE_TABLE_NUMBER = 60
RESERVED_TABLE_NUMBERS = range(253, 256)
# IFNAMSIZ, the kernel limit including terminating null
MAX_INTERFACE_NAME_LENGTH = 16

# ip tool refuses "::" as a gateway, so it means device-only route
UNSPECIFIED_GATEWAY = "::"

IP_PATH = "/sbin/ip"
IPTABLES_PATH = "/sbin/iptables"
IP6TABLES_PATH = "/sbin/ip6tables"

# Child chains hooked into builtin chains at startup
LOCAL_MANGLE_OUTPUT = "st_mangle_OUTPUT"
LOCAL_NAT_POSTROUTING = "st_nat_POSTROUTING"
