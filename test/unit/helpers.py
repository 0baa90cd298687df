# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
from ud3tn_utils.aap import (
    AAPMessage,
    AAPMessageType,
    InsufficientAAPDataError,
)

from archipel_bundle.errors import AAPProtocolError
from archipel_bundle.session import NodeClient

NODE_EID = "dtn://node1/"

DEFAULT_ERRORS = {
    "connect": FileNotFoundError(2, "No such file or directory"),
    "welcome": ValueError("Invalid AAP version: 2"),
    "register": AAPProtocolError("The node rejected the REGISTER request"),
    "send_bundle": AAPProtocolError("The node rejected the SENDBUNDLE"),
    "receive_bundle": ConnectionResetError(104, "Connection reset by peer"),
}


class FakeNode:
    """Stands in for a node daemon; call it to get a client (like a client
    class taking the socket address)."""

    def __init__(self, node_eid=NODE_EID, bundle=None, fail_on=None,
                 error=None):
        self.node_eid = node_eid
        self.bundle = bundle
        self.fail_on = fail_on
        self.error = error or DEFAULT_ERRORS.get(fail_on)
        self.clients = []
        self.sent = []

    def __call__(self, address):
        client = FakeAAPClient(self, address)
        self.clients.append(client)
        return client

    @property
    def client(self):
        assert len(self.clients) == 1
        return self.clients[0]


class FakeAAPClient:

    def __init__(self, node, address):
        self.node = node
        self.address = address
        self.node_eid = None
        self.agent_id = None
        self.connected = False
        self.disconnected = False

    def _fail(self, operation):
        if self.node.fail_on == operation:
            raise self.node.error

    @property
    def eid(self):
        return f"{self.node_eid}{self.agent_id}"

    def connect(self):
        self._fail("connect")
        self.connected = True

    def welcome(self):
        self._fail("welcome")
        self.node_eid = self.node.node_eid
        return self.node_eid

    def register(self, agent_id):
        self._fail("register")
        self.agent_id = agent_id

    def send_bundle(self, dest_eid, bundle_data):
        self._fail("send_bundle")
        self.node.sent.append((dest_eid, bytes(bundle_data)))
        return AAPMessage(
            AAPMessageType.SENDCONFIRM,
            bundle_id=AAPMessage.encode_bundle_id(seqnum=len(self.node.sent)),
        )

    def receive_bundle(self):
        self._fail("receive_bundle")
        return self.node.bundle

    def disconnect(self):
        self.disconnected = True


class SocketPairClient(NodeClient):
    """A NodeClient using one end of an already connected socket pair."""

    def __init__(self, sock):
        super().__init__(address=None)
        self._sock = sock

    def connect(self):
        self.socket = self._sock


class BrokenStream:
    """A binary stream failing on every operation."""

    def read(self, size=-1):
        raise OSError(5, "Input/output error")

    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self):
        pass


def read_message(sock):
    """Read one AAP message from the peer end of a socket."""
    buf = bytearray()
    needed = 1
    while True:
        data = sock.recv(needed - len(buf))
        if not data:
            return None
        buf += data
        if len(buf) < needed:
            continue
        try:
            return AAPMessage.parse(buf)
        except InsufficientAAPDataError as err:
            needed = err.bytes_needed
