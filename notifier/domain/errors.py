"""
Error taxonomy for the dispatch engine.

Lost claim races are not errors: finalize calls report them as zero
affected rows. Transport failures are reported through ``SendResult``.
"""


class NotifierError(Exception):
    """Base class for notifier errors."""


class TransientStoreError(NotifierError):
    """The shared store could not be reached or was locked for this tick."""


class ValidationFailure(NotifierError):
    """A claimed record cannot be delivered (missing recipient or key)."""
