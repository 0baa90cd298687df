# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
"""Exchange a single bundle with an Archipel Core / uD3TN node via AAP."""

__version__ = "0.1.0"
