"""Reservation lifecycle: repository, state machine, fallback and service boundary.

Import from the submodules directly; ``refood.notifications`` depends on the
repository module and this package must stay importable from it.
"""
