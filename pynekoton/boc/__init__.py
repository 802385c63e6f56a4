from .errors import CellError, CellOverflowError, CellUnderflowError, CellValueError, BocError
from .cell import Cell
from .slice import Slice
from .builder import Builder
from .address import Address, AddressError, ExternalAddress
from .deserialize import Boc


def begin_cell():
    return Builder()
