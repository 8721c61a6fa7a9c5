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
Daemon for simple unix socket based exchange of messages with secondary table
controller, together with client side helpers.

Each connection carries exactly one query and one response, both framed as
4 byte big endian length followed by UTF-8 JSON payload. Failures are sent
back as pickled exception, which client side raises again.
"""

# Standard imports
import codecs
import grp
import json
import logging
import os
import pickle
import socket
import struct
from asyncio import IncompleteReadError
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

# Local imports
from secroute.common.common import RESPONSE_FAILURE, RESPONSE_OK
from secroute.communication.message_parser import get_str

SOCKET_RETURN_TYPE = Dict[str, Any]
SOCKET_TIMEOUT_SECONDS = 2


# Taken from https://stackoverflow.com/a/65627642
def read_exactly(sock: socket.socket, num_bytes: int) -> bytes:
    buf = bytearray(num_bytes)
    pos = 0
    while pos < num_bytes:
        n = sock.recv_into(memoryview(buf)[pos:])
        if n == 0:
            raise IncompleteReadError(bytes(buf[:pos]), num_bytes)
        pos += n
    return bytes(buf)


def send_frame(sock: socket.socket, payload: bytes) -> None:
    sock.sendall(struct.pack(">I", len(payload)))
    if len(payload):
        sock.sendall(payload)


def receive_frame(sock: socket.socket) -> bytes:
    size = struct.unpack(">I", read_exactly(sock, 4))[0]
    return read_exactly(sock, size)


def encode_failure(exc: Exception) -> SOCKET_RETURN_TYPE:
    return {
        "status": RESPONSE_FAILURE,
        "exception": codecs.encode(pickle.dumps(exc), "base64").decode(),
    }


def parse_response_from_socket(response: bytes) -> SOCKET_RETURN_TYPE:
    decoded_message: Dict[str, Any] = json.loads(response)
    status = get_str(decoded_message, "status")
    if status == RESPONSE_OK:
        return decoded_message
    elif status == RESPONSE_FAILURE:
        base64_exception = get_str(decoded_message, "exception").encode()
        exc = pickle.loads(codecs.decode(base64_exception, "base64"))
        raise exc
    else:
        raise RuntimeError(f"Recevied unkown status: {status}")


def query_socket(payload: Mapping[str, Any], socket_path: Path) -> SOCKET_RETURN_TYPE:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as daemon_socket:
        daemon_socket.settimeout(SOCKET_TIMEOUT_SECONDS)
        daemon_socket.connect(str(socket_path))
        send_frame(daemon_socket, json.dumps(payload).encode("UTF-8"))
        return parse_response_from_socket(receive_frame(daemon_socket))


class SocketDaemon:
    def __init__(self, socket_path: Path, logger: logging.Logger, *, socket_group: Optional[str] = None) -> None:
        self.socket_path = socket_path
        self.socket_group = socket_group
        self.logger = logger

    def handle_message(self, message: bytes) -> SOCKET_RETURN_TYPE:
        """Implement this method within your socket daemon"""

        raise NotImplementedError

    def handle_client(self, client_socket: socket.socket) -> None:
        # We process one query per connection to limit possibility of getting out of
        # sync between client and server and allow restarts of server without
        # restarts of client
        try:
            client_socket.settimeout(SOCKET_TIMEOUT_SECONDS)
            query_payload = receive_frame(client_socket)
            self.logger.info(f"Received new request, incoming data size: {len(query_payload)}")
            try:
                response = self.handle_message(query_payload)
            except Exception as exc:
                self.logger.exception(exc)
                response = encode_failure(exc)
            send_frame(client_socket, json.dumps(response).encode("UTF-8"))
        except Exception as exc:
            self.logger.exception(exc)
            raise
        finally:
            client_socket.close()

    def run(self) -> None:
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        self.socket_path.unlink(missing_ok=True)
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.bind(str(self.socket_path))
            if self.socket_group is not None:
                os.chown(self.socket_path, -1, grp.getgrnam(self.socket_group).gr_gid)
                os.chmod(self.socket_path, 0o660)
            else:
                os.chmod(self.socket_path, 0o600)
            self.logger.info(f"Started server at {self.socket_path}")
            sock.listen()
            while True:
                connection, _ = sock.accept()
                # Connections are served one by one on purpose: table slots and
                # rule counts must be changed by one request at a time
                try:
                    self.handle_client(connection)
                except Exception:
                    # already logged; restart would lose all table slots, so keep serving
                    continue
