# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
"""Partial DTN endpoint identifiers as accepted on the command line.

A user may pass a complete EID (``dtn://node/agent``), only the node part
(``dtn://node/``) or only an agent ID (``agent``) which is later completed
with the node ID announced by the local node.
"""

import enum

DTN_SCHEME_PREFIX = "dtn://"

# A node name starting with this marker denotes a group (non-singleton)
# endpoint; it is expected right after the scheme prefix.
GROUP_MARKER = "~"
GROUP_MARKER_OFFSET = len(DTN_SCHEME_PREFIX)


class EndpointKind(enum.Enum):
    """Which parts of an EID a `PartialEndpointId` provides."""
    EMPTY = "empty"
    AGENT_ONLY = "agent-only"
    NODE_ONLY = "node-only"
    FULL = "full"


def is_singleton_node(node_id):
    """Return False if `node_id` names a group endpoint.

    A missing node ID counts as singleton; the node decides in that case.
    """
    if node_id is None:
        return True
    return node_id[GROUP_MARKER_OFFSET:GROUP_MARKER_OFFSET + 1] != GROUP_MARKER


class PartialEndpointId:
    """An endpoint ID that may lack its node and/or agent part.

    Use `parse` to create instances. `node_id` includes the scheme prefix and
    the trailing slash (if one was given), so that ``node_id + agent_id``
    yields the full EID.
    """

    __slots__ = ("raw", "kind", "node_id", "agent_id")

    def __init__(self, raw, kind, node_id=None, agent_id=None):
        self.raw = raw
        self.kind = kind
        self.node_id = node_id
        self.agent_id = agent_id

    @classmethod
    def parse(cls, raw):
        if raw.startswith(DTN_SCHEME_PREFIX):
            node_name, sep, agent_id = raw[len(DTN_SCHEME_PREFIX):].partition(
                "/"
            )
            if not sep or not agent_id:
                return cls(raw, EndpointKind.NODE_ONLY, node_id=raw)
            return cls(
                raw,
                EndpointKind.FULL,
                node_id=DTN_SCHEME_PREFIX + node_name + "/",
                agent_id=agent_id,
            )
        if raw:
            return cls(raw, EndpointKind.AGENT_ONLY, agent_id=raw)
        return cls(raw, EndpointKind.EMPTY)

    @property
    def is_singleton(self):
        return is_singleton_node(self.node_id)

    def __eq__(self, other):
        if not isinstance(other, PartialEndpointId):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self):
        return hash(self.raw)

    def __str__(self):
        return self.raw

    def __repr__(self):
        return "<PartialEndpointId {} node={!r} agent={!r}>".format(
            self.kind.name, self.node_id, self.agent_id
        )
