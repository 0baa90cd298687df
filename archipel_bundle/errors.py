# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
"""Failures of a bundle exchange, each mapped to the process exit code."""


class BundleToolError(RuntimeError):
    """The base class for all failures reported by the command line tool."""

    exit_code = 1


class ConfigurationError(BundleToolError):
    """The given addresses are unusable; detected before any I/O."""

    pass


class IncompleteEndpointError(ConfigurationError):
    """The destination EID lacks its node or agent part."""

    pass


class NonSingletonEndpointError(BundleToolError):
    """A group endpoint was given where a singleton one is required."""

    pass


class NodeIdMismatchError(BundleToolError):
    """A given node ID differs from the one announced by the node.

    Attributes:
        node_id (str): The node ID announced by the node.
    """

    exit_code = 2

    def __init__(self, node_id):
        super().__init__(
            "Provided node id is different from node id configured on "
            f"server ({node_id})"
        )
        self.node_id = node_id


class ConnectionFailedError(BundleToolError):
    """The node socket could not be opened."""

    exit_code = 10


class HandshakeFailedError(BundleToolError):
    """The node did not greet with a valid WELCOME message."""

    exit_code = 11


class RegistrationFailedError(BundleToolError):
    """The node did not accept the agent registration."""

    exit_code = 11


class InputReadError(BundleToolError):
    """The bundle payload could not be read from the input stream."""

    exit_code = 13


class BundleSendError(BundleToolError):
    """The node did not confirm the bundle to be sent."""

    exit_code = 14


class BundleReceiveError(BundleToolError):
    """No bundle could be received from the node."""

    exit_code = 15


class OutputWriteError(BundleToolError):
    """The received payload could not be written to the output stream."""

    exit_code = 16


class AAPProtocolError(RuntimeError):
    """The node closed the connection or answered with an unexpected AAP
    message.

    Attributes:
        message: The unexpected `AAPMessage`, or None if the connection broke.
    """

    def __init__(self, *args, message=None):
        super().__init__(*args)
        self.message = message


class SessionStateError(RuntimeError):
    """A session operation was called out of order."""

    pass
