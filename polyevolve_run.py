# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the entry point script for PolyEvolve.
#
# ===--------------------------------------------------------------------------------------===#

import sys
from polyevolve.cli import main

if __name__ == "__main__":
    sys.exit(main())
