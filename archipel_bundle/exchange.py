# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
"""The single bundle transfer performed over a registered session."""

import logging

from .errors import (
    BundleReceiveError,
    BundleSendError,
    InputReadError,
    OutputWriteError,
)
from .session import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024


def read_payload(input_stream, chunk_size=READ_CHUNK_SIZE):
    """Read `input_stream` until EOF and return everything as bytes."""
    payload = bytearray()
    try:
        while True:
            chunk = input_stream.read(chunk_size)
            if not chunk:
                break
            payload += chunk
    except OSError as err:
        raise InputReadError(f"Failed to read from stdin: {err}") from err
    return bytes(payload)


def send_bundle(session, destination, input_stream,
                chunk_size=READ_CHUNK_SIZE):
    """Send the whole content of `input_stream` as one bundle.

    Args:
        session (SessionNegotiator): A session in state REGISTERED.
        destination (str): The full destination EID.
        input_stream: A binary file object, usually `sys.stdin.buffer`.
        chunk_size (int): The amount of bytes requested per read.

    Return:
        The amount of payload bytes sent.

    Raises:
        InputReadError: If reading `input_stream` fails.
        BundleSendError: If the node does not accept the bundle.

    """
    session.activate()
    payload = read_payload(input_stream, chunk_size)
    try:
        session.client.send_bundle(destination, payload)
    except TRANSPORT_ERRORS as err:
        raise BundleSendError(f"Failed to send bundle: {err}") from err
    logger.info("Sent %d byte bundle to %s", len(payload), destination)
    return len(payload)


def receive_bundle(session, output_stream):
    """Wait for one bundle and write its payload to `output_stream`.

    Blocks without a timeout until the node delivers a bundle.

    Args:
        session (SessionNegotiator): A session in state REGISTERED.
        output_stream: A binary file object, usually `sys.stdout.buffer`.

    Return:
        The received `Bundle`.

    Raises:
        BundleReceiveError: If no bundle could be received.
        OutputWriteError: If writing to `output_stream` fails.

    """
    session.activate()
    logger.debug("Waiting for a bundle...")
    try:
        bundle = session.client.receive_bundle()
    except TRANSPORT_ERRORS as err:
        raise BundleReceiveError(f"Failed to receive bundle: {err}") from err

    if bundle.source:
        logger.info("Received bundle from %s", bundle.source)
    else:
        logger.info("Received bundle from unknown source")

    try:
        output_stream.write(bundle.payload)
        output_stream.flush()
    except OSError as err:
        raise OutputWriteError(f"Failed to write to stdout: {err}") from err
    return bundle
