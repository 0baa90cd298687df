#!/usr/bin/env python3
# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
# encoding: utf-8

import argparse
import logging
import sys

from . import __version__
from .endpoint import PartialEndpointId
from .errors import BundleToolError, ConfigurationError
from .exchange import receive_bundle, send_bundle
from .session import Mode, NodeClient, SessionIntent, SessionNegotiator

DEFAULT_NODE_SOCKET = "/run/archipel-core/archipel-core.socket"


def initialize_logger(verbosity: int):
    log_level = {
        0: logging.WARN,
        1: logging.INFO,
    }.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s: %(message)s",
    )
    return logging.getLogger(sys.argv[0])


def build_parser():
    parser = argparse.ArgumentParser(
        prog="archipel-bundle",
        description="send and receive bundles with archipel/ud3tn",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help=(
            "print connection information on stderr "
            "(repeat for protocol details)"
        ),
    )
    parser.add_argument(
        "-l", "--listen",
        action="store_true",
        help=(
            "wait for a bundle to be received and output its content "
            "on stdout"
        ),
    )
    parser.add_argument(
        "-S", "--source-endpoint",
        metavar="EID",
        type=PartialEndpointId.parse,
        default=None,
        help=(
            "when sending, the endpoint to send the bundle from, formatted "
            "as dtn://<node_id>/<agent_id> (default: random UUID agent)"
        ),
    )
    parser.add_argument(
        "endpoint_id",
        nargs="?",
        type=PartialEndpointId.parse,
        default=None,
        help=(
            "the full destination EID (dtn://<node_id>/<agent_id>) when "
            "sending; when listening, the EID or bare agent id to register "
            "(default: random UUID)"
        ),
    )
    parser.add_argument(
        "--node-sock",
        metavar="PATH",
        default=DEFAULT_NODE_SOCKET,
        help=f"archipel/ud3tn AAP socket (default: {DEFAULT_NODE_SOCKET})",
    )
    return parser


def build_intent(args):
    if args.listen:
        return SessionIntent(Mode.LISTEN, None, args.endpoint_id)
    return SessionIntent(Mode.SEND, args.endpoint_id, args.source_endpoint)


def run(args, client_factory, input_stream, output_stream):
    """Perform the exchange described by `args`.

    Raises:
        BundleToolError: On any failure; see `archipel_bundle.errors`.

    """
    intent = build_intent(args)
    with SessionNegotiator(intent, client_factory) as session:
        session.establish(args.node_sock)
        if intent.mode == Mode.LISTEN:
            receive_bundle(session, output_stream)
        else:
            send_bundle(session, intent.destination.raw, input_stream)


def main(argv=None, client_factory=NodeClient,
         input_stream=None, output_stream=None):
    """Command line entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.listen and args.endpoint_id is None:
        parser.error("the following arguments are required: endpoint_id")

    logger = initialize_logger(args.verbose)
    if args.listen and args.source_endpoint is not None:
        logger.warning("--source-endpoint is ignored when listening")

    if input_stream is None:
        input_stream = sys.stdin.buffer
    if output_stream is None:
        output_stream = sys.stdout.buffer

    try:
        run(args, client_factory, input_stream, output_stream)
    except ConfigurationError as err:
        parser.error(str(err))
    except BundleToolError as err:
        logger.critical("%s", err)
        return err.exit_code
    return 0
