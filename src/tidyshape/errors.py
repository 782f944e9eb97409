# -------------------------------------
# Table errors
# -------------------------------------
"""
Error hierarchy for table operations.

Every failure raised by an operator derives from TableError, which is a
ValueError so callers that already catch ValueError keep working.
"""


class TableError(ValueError):
    """Base class for table operation failures."""


class UnknownColumn(TableError):
    """A referenced column does not exist in the table."""


class TypeMismatch(TableError):
    """An aggregate, comparison or arithmetic was applied to incompatible values."""


class UndefinedAggregate(TableError):
    """An aggregate met missing values and no na_rm policy was given."""


class DuplicateKeyValue(TableError):
    """pivot_wider found two rows for the same identity key and name."""


class EmptyGroup(TableError):
    """An aggregate was asked to reduce zero values."""


class PipelineError(TableError):
    """A pipeline chain could not be parsed."""
