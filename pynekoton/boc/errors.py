class CellError(BaseException):
    pass


class CellOverflowError(CellError):
    """
    Raised when a write would exceed 1023 bits or 4 refs of a cell
    """
    pass


class CellUnderflowError(CellError):
    """
    Raised when a read requests more bits or refs than the slice has left
    """
    pass


class CellValueError(CellError):
    """
    Raised when a value cannot be represented with the requested layout,
    e.g. store_uint(256, 8) or a negative value for an unsigned field
    """
    pass


class BocError(CellError):
    pass
