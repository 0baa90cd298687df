# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
"""Validation and set-up of the single AAP session used per invocation."""

import collections
import enum
import functools
import logging
import socket
import uuid

from ud3tn_utils.aap import AAPMessage, AAPMessageType, AAPUnixClient

from .errors import (
    AAPProtocolError,
    ConnectionFailedError,
    HandshakeFailedError,
    IncompleteEndpointError,
    NodeIdMismatchError,
    NonSingletonEndpointError,
    RegistrationFailedError,
    SessionStateError,
)

logger = logging.getLogger(__name__)

# Raised by the AAP client and codec on a broken or garbled connection.
TRANSPORT_ERRORS = (AAPProtocolError, OSError, ValueError)


Bundle = collections.namedtuple("Bundle", ["source", "payload"])
Bundle.__doc__ = """A bundle delivered to the registered agent.

Attrs:
    source (str): The source EID, or None if the node did not report one.
    payload (bytes): The complete bundle payload.
"""


def _expect(msg, msg_type, operation):
    if msg is None:
        raise AAPProtocolError(
            f"Connection broke awaiting the answer to {operation}"
        )
    if msg.msg_type == msg_type:
        return msg
    received = AAPMessageType(msg.msg_type).name
    if msg.msg_type == AAPMessageType.NACK:
        raise AAPProtocolError(
            f"The node rejected the {operation} request", message=msg
        )
    raise AAPProtocolError(
        f"Expected {msg_type.name} in response to {operation} but "
        f"received: {received}",
        message=msg,
    )


class NodeClient(AAPUnixClient):
    """`AAPUnixClient` with connecting and awaiting the WELCOME message as
    separate steps (`connect`, `welcome`), so that an unreachable node can be
    told apart from one not speaking AAP. Unexpected answers raise
    `AAPProtocolError` instead of failing an assertion.
    """

    def connect(self):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self.address)
        except OSError:
            sock.close()
            raise
        self.socket = sock

    def welcome(self):
        """Receive the WELCOME message and return the announced node EID."""
        msg = _expect(self.receive(), AAPMessageType.WELCOME, "connection")
        self.node_eid = msg.eid
        logger.debug(f"WELCOME message received! ~ EID = {self.node_eid}")
        return self.node_eid

    def register(self, agent_id):
        logger.debug(f"Sending REGISTER message for '{agent_id}'...")
        _expect(
            self.send(AAPMessage(AAPMessageType.REGISTER, agent_id)),
            AAPMessageType.ACK,
            "REGISTER",
        )
        self.agent_id = agent_id

    def send_bundle(self, dest_eid, bundle_data):
        """Send a bundle and return the SENDCONFIRM message."""
        logger.debug(f"Sending SENDBUNDLE message to {dest_eid}")
        msg_sendconfirm = _expect(
            self.send(AAPMessage(
                AAPMessageType.SENDBUNDLE, dest_eid, bundle_data
            )),
            AAPMessageType.SENDCONFIRM,
            "SENDBUNDLE",
        )
        try:
            bundle_id = msg_sendconfirm.decode_bundle_id()
        except ValueError:
            bundle_id = msg_sendconfirm.bundle_id
        logger.debug(f"SENDCONFIRM message received! ~ ID = {bundle_id}")
        return msg_sendconfirm

    def receive_bundle(self):
        """Block until a RECVBUNDLE message arrives and return it as `Bundle`;
        other messages are discarded."""
        while True:
            msg = self.receive()
            if msg is None:
                raise AAPProtocolError(
                    "Connection broke while waiting for a bundle"
                )
            if msg.msg_type == AAPMessageType.RECVBUNDLE:
                return Bundle(
                    source=msg.eid or None,
                    payload=bytes(msg.payload),
                )
            logger.info(
                "Received %s message, discarding.",
                AAPMessageType(msg.msg_type).name,
            )

    def disconnect(self):
        if self.socket is None:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError as err:
            # The node may have closed its side already.
            logger.debug("Socket shutdown failed: %s", err)
        self.socket.close()
        self.socket = None


class Mode(enum.Enum):
    SEND = "send"
    LISTEN = "listen"


SessionIntent = collections.namedtuple(
    "SessionIntent", ["mode", "destination", "local_endpoint"]
)
SessionIntent.__doc__ = """What the user asked for, in parsed form.

Attrs:
    mode (Mode): Whether to send or to listen for a bundle.
    destination (PartialEndpointId): The destination EID (send mode only).
    local_endpoint (PartialEndpointId): The source EID when sending, the
        listening EID when listening; None if not given.
"""


class SessionState(enum.Enum):
    IDLE = 0
    VALIDATED = 1
    CONNECTED = 2
    HANDSHAKEN = 3
    REGISTERED = 4
    ACTIVE = 5
    CLOSED = 6
    ABORTED = 7


def validate_intent(intent):
    """Check the addresses of `intent` without doing any I/O.

    Raises:
        IncompleteEndpointError: If the destination of a send lacks its node
            or agent part.
        NonSingletonEndpointError: If the source (send) or the listening
            address (listen) is a group endpoint.

    """
    if intent.mode == Mode.SEND:
        destination = intent.destination
        if destination is None or destination.node_id is None:
            raise IncompleteEndpointError(
                "When sending a bundle, destination eid must contain a "
                "node_id part"
            )
        if destination.agent_id is None:
            raise IncompleteEndpointError(
                "When sending a bundle, destination eid must contain an "
                "agent_id part"
            )
        if intent.local_endpoint and not intent.local_endpoint.is_singleton:
            raise NonSingletonEndpointError(
                "Sending bundle from non-singleton node_id is not supported"
            )
    elif intent.local_endpoint and not intent.local_endpoint.is_singleton:
        raise NonSingletonEndpointError(
            "Listening on non-singleton node_id is not supported"
        )


def _step(from_state, to_state):
    """Run the decorated method only in `from_state`; advance to `to_state`
    on success and to ABORTED on any exception."""

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if self.state != from_state:
                raise SessionStateError(
                    f"{method.__name__}() requires state {from_state.name}, "
                    f"session is {self.state.name}"
                )
            try:
                result = method(self, *args, **kwargs)
            except Exception:
                self.state = SessionState.ABORTED
                raise
            self.state = to_state
            return result
        return wrapper

    return decorator


class SessionNegotiator:
    """Drives one AAP session from validation up to the registered agent.

    Args:
        intent (SessionIntent): The parsed user request.
        client_factory: Callable returning an unconnected AAP client for a
            given socket address; `NodeClient` by default.

    Attributes:
        state (SessionState): Where the session currently is.
        client: The AAP client, once `connect` was called.
        node_id (str): The node ID announced by the node.
        agent_id (str): The registered agent ID.

    """

    def __init__(self, intent, client_factory=NodeClient):
        self.intent = intent
        self.client_factory = client_factory
        self.state = SessionState.IDLE
        self.client = None
        self.node_id = None
        self.agent_id = None

    @_step(SessionState.IDLE, SessionState.VALIDATED)
    def validate(self):
        validate_intent(self.intent)

    @_step(SessionState.VALIDATED, SessionState.CONNECTED)
    def connect(self, socket_path):
        client = self.client_factory(socket_path)
        try:
            client.connect()
        except OSError as err:
            raise ConnectionFailedError(
                f"Failed to connect to node socket: {err}"
            ) from err
        self.client = client
        logger.info("Connected to node on %s", socket_path)

    @_step(SessionState.CONNECTED, SessionState.HANDSHAKEN)
    def handshake(self):
        try:
            self.node_id = self.client.welcome()
        except TRANSPORT_ERRORS as err:
            raise HandshakeFailedError(
                f"Failed to establish a connection with node: {err}"
            ) from err
        logger.info("Welcome from node %s", self.node_id)

    def cross_check_node(self):
        """Ensure an explicitly given local node ID is the node's own one.

        Raises:
            NodeIdMismatchError: If the IDs differ.

        """
        self._require(SessionState.HANDSHAKEN)
        local = self.intent.local_endpoint
        if local is not None and local.node_id is not None:
            if local.node_id != self.node_id:
                self.state = SessionState.ABORTED
                raise NodeIdMismatchError(self.node_id)

    def derive_agent_id(self):
        """Return the agent ID to register: the one given by the user, else a
        random UUID."""
        self._require(SessionState.HANDSHAKEN)
        local = self.intent.local_endpoint
        if local is not None and local.agent_id is not None:
            return local.agent_id
        return str(uuid.uuid4())

    @_step(SessionState.HANDSHAKEN, SessionState.REGISTERED)
    def register(self, agent_id):
        try:
            self.client.register(agent_id)
        except TRANSPORT_ERRORS as err:
            raise RegistrationFailedError(
                f"Failed to register agent '{agent_id}' with node: {err}"
            ) from err
        self.agent_id = agent_id
        logger.info("Agent registered on endpoint %s", self.client.eid)

    @_step(SessionState.REGISTERED, SessionState.ACTIVE)
    def activate(self):
        pass

    def establish(self, socket_path):
        """Run all set-up steps in order and return the registered client."""
        self.validate()
        self.connect(socket_path)
        self.handshake()
        self.cross_check_node()
        self.register(self.derive_agent_id())
        return self.client

    def abort(self):
        if self.state not in (SessionState.CLOSED, SessionState.ABORTED):
            self.state = SessionState.ABORTED

    def close(self):
        """Release the connection. Safe to call in any state."""
        if self.client is not None:
            self.client.disconnect()
            self.client = None
        if self.state != SessionState.ABORTED:
            self.state = SessionState.CLOSED

    def _require(self, state):
        if self.state != state:
            raise SessionStateError(
                f"Operation requires state {state.name}, "
                f"session is {self.state.name}"
            )

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        if value is not None:
            self.abort()
        self.close()
