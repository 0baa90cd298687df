# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
import os
import socket
import threading

from ud3tn_utils.aap import AAPMessage, AAPMessageType

from ..unit.helpers import read_message

TEST_AAP_LOCAL = os.environ.get("TEST_AAP_LOCAL", "1") != "0"
NODE_EID = os.environ.get("TEST_AAP_NODE_EID", "dtn://integration.dtn/")
THREAD_TIMEOUT = 5


class AAPNodeStub(threading.Thread):
    """Serves a single AAP connection on a UNIX socket like a node would:
    WELCOME, ACK for REGISTER (followed by `bundle`, if set) and SENDCONFIRM
    for SENDBUNDLE."""

    def __init__(self, path, node_eid=NODE_EID, bundle=None):
        super().__init__(daemon=True)
        self.node_eid = node_eid
        self.bundle = bundle
        self.received = []
        self.server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server.bind(path)
        self.server.listen(1)

    def run(self):
        try:
            conn, _ = self.server.accept()
            with conn:
                self._serve(conn)
        finally:
            self.server.close()

    def _serve(self, conn):
        conn.sendall(
            AAPMessage(AAPMessageType.WELCOME, self.node_eid).serialize()
        )
        seqnum = 0
        while True:
            msg = read_message(conn)
            if msg is None:
                return
            self.received.append(msg)
            if msg.msg_type == AAPMessageType.REGISTER:
                conn.sendall(AAPMessage(AAPMessageType.ACK).serialize())
                if self.bundle is not None:
                    source, payload = self.bundle
                    conn.sendall(AAPMessage(
                        AAPMessageType.RECVBUNDLE, source, payload
                    ).serialize())
            elif msg.msg_type == AAPMessageType.SENDBUNDLE:
                seqnum += 1
                conn.sendall(AAPMessage(
                    AAPMessageType.SENDCONFIRM,
                    bundle_id=AAPMessage.encode_bundle_id(seqnum=seqnum),
                ).serialize())
            else:
                conn.sendall(AAPMessage(AAPMessageType.NACK).serialize())
