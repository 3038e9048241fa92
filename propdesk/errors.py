from typing import Dict


class PropdeskError(Exception):
    """Base class for every error raised by propdesk."""


class StorageError(PropdeskError):
    """The storage engine rejected a query or statement."""


class RowValidationError(StorageError):
    """A stored row does not match its record schema."""

    def __init__(self, table: str, row: dict, detail: str):
        self.table = table
        self.row = row
        self.detail = detail
        super().__init__(f"Invalid row in {table}: {detail}")


class ConstraintError(StorageError):
    """A statement violated a NOT NULL, UNIQUE, CHECK or foreign key constraint."""


class ReferenceInUseError(ConstraintError):
    """A delete was blocked because other rows still point at the target."""

    def __init__(self, table: str, pk, referenced_by: str, count: int):
        self.table = table
        self.pk = pk
        self.referenced_by = referenced_by
        self.count = count
        super().__init__(
            f"Cannot delete {table} #{pk}: still referenced by {count} row(s) in {referenced_by}"
        )


class NotFoundError(PropdeskError):
    def __init__(self, table: str, pk):
        self.table = table
        self.pk = pk
        super().__init__(f"{table} #{pk} not found")


class FormError(PropdeskError):
    """Form input failed validation; nothing was written."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
