# ===--------------------------------------------------------------------------------------===#
#
# Part of the PolyEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the repository root for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the exception hierarchy of PolyEvolve.
#
# ===--------------------------------------------------------------------------------------===#


class PolyEvolveError(Exception):
    """Base class for all errors raised by PolyEvolve."""


class InvariantError(PolyEvolveError):
    """Raised when a contract between mesh components is broken.

    These errors indicate a programming or integration defect (e.g. a triangulator
    returning vertices it was never given) and are not meant to be recovered from.
    """


class RoundIndexError(InvariantError, IndexError):
    """Raised when a member is addressed with a round it does not have."""


class MemberResolutionError(InvariantError):
    """Raised when a triangulated vertex cannot be resolved to a distinct member."""


class DuplicatePointError(InvariantError):
    """Raised when duplicate coordinates are handed to a triangulator."""


class TriangulationError(InvariantError):
    """Raised when a point set cannot be triangulated or yields no triangles."""
