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
from __future__ import annotations

# Standard imports
import ipaddress
from typing import Any, Mapping, Protocol, Type, TypeVar

# Local imports
from secroute.communication.common import InvalidParameterError, InvalidPayloadError
from secroute.network.common import MAX_INTERFACE_NAME_LENGTH

T = TypeVar("T")
ReturnType_co = TypeVar("ReturnType_co", covariant=True)


class GetterFunction(Protocol[ReturnType_co]):
    def __call__(self, transaction: Mapping[str, Any], key: str) -> ReturnType_co:
        pass


def _get_type(raw_type: Any, subscripted_type: Type[T], name_in_error: str) -> GetterFunction[T]:
    def get(transaction: Mapping[str, Any], key: str) -> T:
        value = transaction[key]
        # bool is subclass of int, but true is never a valid uid or prefix
        if not isinstance(value, raw_type) or (raw_type is int and isinstance(value, bool)):
            raise InvalidPayloadError(f"Entry must be a {name_in_error}: {key}")
        return value  # type: ignore
    return get


def mandatory_key(transaction: Mapping[str, Any], key: str) -> None:
    if key not in transaction:
        raise InvalidPayloadError(f"Missing entry: {key}")


def make_mandatory(fun: GetterFunction[ReturnType_co]) -> GetterFunction[ReturnType_co]:
    def mandatory(transaction: Mapping[str, Any], key: str) -> ReturnType_co:
        mandatory_key(transaction, key)
        return fun(transaction, key)
    return mandatory


def make_optional_with_default(fun: GetterFunction[T], default: T) -> GetterFunction[T]:
    def optional(transaction: Mapping[str, Any], key: str) -> T:
        if key not in transaction:
            return default
        if transaction[key] is None:
            return default
        return fun(transaction, key)
    return optional


def _get_str(transaction: Mapping[str, Any], key: str) -> str:
    value: str = _get_type(str, str, "string")(transaction, key)
    return value.strip()


get_optional_str = make_optional_with_default(_get_str, "")
_get_mandatory_str = make_mandatory(_get_str)
get_int = make_mandatory(_get_type(int, int, "integer"))


def get_str(transaction: Mapping[str, Any], key: str) -> str:
    value = _get_mandatory_str(transaction, key)
    if len(value) < 1:
        raise InvalidParameterError(f"Entry string must not be empty: {key}")
    return value


def get_str_with_default(transaction: Mapping[str, Any], key: str, *, default: str) -> str:
    value = get_optional_str(transaction, key)
    if len(value) < 1:
        return default
    return value


def get_interface_name(transaction: Mapping[str, Any], key: str) -> str:
    value = get_str(transaction, key)
    # kernel interface names are at most IFNAMSIZ - 1 characters long
    if len(value) >= MAX_INTERFACE_NAME_LENGTH or "/" in value or any(c.isspace() for c in value):
        raise InvalidParameterError(f"Invalid interface name `{value}` in {key}")
    return value


def get_ip46_str(transaction: Mapping[str, Any], key: str) -> str:
    """Returns address as sent by client, after checking it parses as IPv4 or IPv6 address."""
    value = get_str(transaction, key)
    try:
        ipaddress.ip_address(value)
    except ValueError as exc:
        raise InvalidParameterError(f"Error in IP address `{key}`: {exc}")
    return value


def get_ip46_str_with_optional_mask(transaction: Mapping[str, Any], key: str) -> str:
    value = get_str(transaction, key)
    try:
        ipaddress.ip_network(value, strict=False)
    except ValueError as exc:
        raise InvalidParameterError(f"Error in IP address `{key}`: {exc}")
    return value


def get_prefix_length(transaction: Mapping[str, Any], key: str, *, is_ipv6: bool) -> int:
    value = get_int(transaction, key)
    max_prefix = 128 if is_ipv6 else 32
    if not 0 <= value <= max_prefix:
        raise InvalidParameterError(f"Prefix length {value} out of range 0-{max_prefix}: {key}")
    return value


def get_uid(transaction: Mapping[str, Any], key: str) -> int:
    value = get_int(transaction, key)
    if value < 0:
        raise InvalidParameterError(f"Uid must not be negative: {key}")
    return value
