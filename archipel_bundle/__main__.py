# SPDX-License-Identifier: BSD-3-Clause OR Apache-2.0
import sys

from .cli import main

sys.exit(main())
