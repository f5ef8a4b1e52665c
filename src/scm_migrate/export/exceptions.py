"""Export exceptions."""


class ExportError(Exception):
    """Raised when an export run cannot complete.

    Covers clone failures of non-empty repositories, failed listings and
    failed writes of the interchange tree. The checkpoint is kept so the
    run can be resumed.
    """

    pass
