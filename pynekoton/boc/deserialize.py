import base64
import binascii
import logging
import typing

from bitarray import bitarray

from .cell import Cell, MAX_REFS
from .errors import BocError
from .tvm_bitarray import MAX_BITS
from .utils import bytes_to_uint
from ..crypto.crc import crc32c


# https://github.com/ton-blockchain/ton/blob/24dc184a2ea67f9c47042b4104bbb4d82289fac1/crypto/tl/boc.tlb#L25
SERIALIZED_BOC_PREFIX = b'\xb5\xee\x9cr'  # REACH_BOC_MAGIC_PREFIX b5ee9c72

logger = logging.getLogger(__name__)


class Boc:
    """
    Bag of cells: flat serialization of a cell DAG.

    serialized_boc#b5ee9c72 has_idx:(## 1) has_crc32c:(## 1)
      has_cache_bits:(## 1) flags:(## 2) { flags = 0 }
      size:(## 3) { size <= 4 }
      off_bytes:(## 8) { off_bytes <= 8 }
      cells:(##(size * 8))
      roots:(##(size * 8)) { roots >= 1 }
      absent:(##(size * 8)) { roots + absent <= cells }
      tot_cells_size:(##(off_bytes * 8))
      root_list:(roots * ##(size * 8))
      index:has_idx?(cells * ##(off_bytes * 8))
      cell_data:(tot_cells_size * [ uint8 ])
      crc32c:has_crc32c?uint32
      = BagOfCells;
    """

    def __init__(self, data: typing.Union[bytes, str]):
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, bytes):
            try:
                data = bytes.fromhex(data)
            except ValueError:
                try:
                    data = base64.b64decode(data, validate=True)
                except binascii.Error:
                    raise BocError('boc data in unknown form')
        self.data = data
        self.data_len = len(data)

    @classmethod
    def from_base64(cls, data: str):
        return cls(base64.b64decode(data))

    @classmethod
    def from_hex(cls, data: str):
        return cls(bytes.fromhex(data))

    @staticmethod
    def order(roots: typing.List[Cell]) -> typing.Dict[Cell, int]:
        """
        Assigns an index to every distinct cell reachable from the roots.
        Equal cells (same hash) share one index, every parent goes before its children.
        :return: dict {<Cell>: <index>}
        """
        visited = set()
        post_order = []
        for root in roots:
            if root in visited:
                continue
            visited.add(root)
            stack = [(root, iter(root.refs))]
            while stack:
                cell, refs = stack[-1]
                for ref in refs:
                    if ref not in visited:
                        visited.add(ref)
                        stack.append((ref, iter(ref.refs)))
                        break
                else:
                    stack.pop()
                    post_order.append(cell)
        post_order.reverse()
        return {cell: i for i, cell in enumerate(post_order)}

    @classmethod
    def serialize(cls, roots: typing.List[Cell], has_idx: bool = False, hash_crc32: bool = True,
                  has_cache_bits: bool = False, flags: int = 0) -> bytes:
        if not roots:
            raise BocError('can not serialize boc without root cells')
        if has_cache_bits and not has_idx:
            raise BocError('cache bits can be stored only with index')
        ordered_cells = cls.order(roots)  # {root_cell: 0, cell1: 1, cell2: 2 ...}

        cells_num = len(ordered_cells)

        size_bytes = max((cells_num.bit_length() + 7) // 8, 1)  # equals to math.ceil(math.log2(cells_num + 1) / 8) but 3x faster

        # flags = 0_0_0_00_000: has_idx 1bit, hash_crc32 1bit, has_cache_bits 1bit, flags 2bit, size_bytes 3 bit
        flags_byte = (has_idx * 128 + hash_crc32 * 64 + has_cache_bits * 32 + flags * 8 + size_bytes).to_bytes(1, 'big')

        serialized_cells = [cell.serialize(ordered_cells, size_bytes) for cell in ordered_cells]
        payload = b''.join(serialized_cells)

        off_bytes = max((len(payload).bit_length() + 7) // 8, 1)

        result = SERIALIZED_BOC_PREFIX + \
            flags_byte + \
            off_bytes.to_bytes(1, 'big') + \
            cells_num.to_bytes(size_bytes, 'big') + \
            len(roots).to_bytes(size_bytes, 'big') + \
            (0).to_bytes(size_bytes, 'big') + \
            len(payload).to_bytes(off_bytes, 'big')

        for root in roots:
            result += ordered_cells[root].to_bytes(size_bytes, 'big')

        if has_idx:
            offset = 0
            for serialized in serialized_cells:
                offset += len(serialized)
                result += (offset * 2 if has_cache_bits else offset).to_bytes(off_bytes, 'big')
        result += payload
        if hash_crc32:
            result += crc32c(result)
        logger.debug(f'serialized {cells_num} cells into {len(result)} bytes boc')
        return result

    @staticmethod
    def deserialize_boc_header(data: bytes) -> dict:
        data_len = len(data)
        if data_len < 6:
            raise BocError(f'not enough bytes to deserialize boc header: {data.hex()}')
        if data[:4] != SERIALIZED_BOC_PREFIX:
            raise BocError(f'unknown boc prefix: {data[:4].hex()}')

        flags_byte = data[4]
        result = {
            'has_idx': bool(flags_byte & 128),
            'hash_crc32': bool(flags_byte & 64),
            'has_cache_bits': bool(flags_byte & 32),
            'flags': (flags_byte >> 3) & 3,
            'size_bytes': flags_byte & 7,
            'offset_bytes': data[5],
            'cells_num': None,
            'roots_num': None,
            'absent_num': None,
            'tot_cells_size': None,
            'root_list': None,
            'index': None,
            'cells_data': None,
        }

        # checksum goes first: nothing else is trusted until it matches
        if result['hash_crc32']:
            if data_len < 10:
                raise BocError('not enough bytes for crc32c hashsum')
            if crc32c(data[:-4]) != data[-4:]:
                raise BocError('crc32c hashsum mismatch')
            data = data[:-4]
            data_len -= 4

        size_bytes = result['size_bytes']
        offset_bytes = result['offset_bytes']
        if not 1 <= size_bytes <= 4:
            raise BocError(f'invalid boc cell index size: {size_bytes}')
        if not 1 <= offset_bytes <= 8:
            raise BocError(f'invalid boc offset size: {offset_bytes}')
        if data_len - 6 < 3 * size_bytes + offset_bytes:
            raise BocError('can\'t parse boc header: not enough bytes')

        end = 6 + 3 * size_bytes
        result['cells_num'], result['roots_num'], result['absent_num'] \
            = [bytes_to_uint(data[i: i + size_bytes]) for i in range(6, end, size_bytes)]

        if result['roots_num'] < 1:
            raise BocError('boc must have at least one root')
        if result['absent_num'] != 0:
            raise BocError('boc with absent cells is not supported')
        if result['roots_num'] + result['absent_num'] > result['cells_num']:
            raise BocError('boc has more roots than cells')

        i = end + offset_bytes
        result['tot_cells_size'] = bytes_to_uint(data[end: i])

        if data_len - i < result['roots_num'] * size_bytes:
            raise BocError('not enough bytes for encoding root cells indexes')
        end = i + result['roots_num'] * size_bytes
        result['root_list'] = [bytes_to_uint(data[j: j + size_bytes]) for j in range(i, end, size_bytes)]
        for root_index in result['root_list']:
            if root_index >= result['cells_num']:
                raise BocError(f'root index {root_index} is out of {result["cells_num"]} cells')
        i = end
        if result['has_idx']:
            if data_len - i < offset_bytes * result['cells_num']:
                raise BocError('not enough bytes for index encoding')
            end = i + result['cells_num'] * offset_bytes
            result['index'] = [bytes_to_uint(data[j: j + offset_bytes]) for j in range(i, end, offset_bytes)]
            i = end

        if data_len - i < result['tot_cells_size']:
            raise BocError('not enough bytes for cells data')

        end = i + result['tot_cells_size']
        result['cells_data'] = data[i: end]
        if data_len - end:  # != 0
            raise BocError('too many bytes in boc')
        return result

    @staticmethod
    def deserialize_cell(data: bytes, i: int, ref_index_size: int) -> typing.Tuple[dict, int]:
        """
        :param i: offset of the cell in data
        :return: raw cell dict and offset of the next cell
        """
        data_len = len(data)
        if data_len - i < 2:
            raise BocError('not enough bytes to encode cell descriptors')
        refs_descriptor = data[i]
        level = refs_descriptor >> 5
        total_refs = refs_descriptor & 7
        has_hashes = (refs_descriptor & 16) != 0
        is_exotic = refs_descriptor & 8
        if total_refs == 7:
            raise BocError('can\'t deserialize absent cell')
        if total_refs > MAX_REFS:
            raise BocError(f'cell can not have {total_refs} refs')
        if is_exotic or level:
            raise BocError('exotic cells are not supported')
        bits_descriptor = data[i + 1]
        is_augmented = bits_descriptor & 1
        data_size = (bits_descriptor >> 1) + is_augmented
        hashes_size = 32 if has_hashes else 0
        depth_size = 2 if has_hashes else 0
        i += 2

        if data_len - i < hashes_size + depth_size + data_size + ref_index_size * total_refs:
            raise BocError('not enough bytes to encode cell data')

        i += hashes_size + depth_size
        bits = bitarray()
        bits.frombytes(data[i: i + data_size])
        i += data_size

        if is_augmented:
            # completion tag: the last 1 bit in the last byte, followed only by zeros
            end = len(bits)
            while end > len(bits) - 8 and not bits[end - 1]:
                end -= 1
            if end == len(bits) - 8:
                raise BocError('cell data has no completion tag')
            bits = bits[:end - 1]
        if len(bits) > MAX_BITS:
            raise BocError(f'cell can not have {len(bits)} bits')

        cell_refs_indexes = []
        for _ in range(total_refs):
            cell_refs_indexes.append(bytes_to_uint(data[i: i + ref_index_size]))
            i += ref_index_size

        return {'bits': bits, 'refs': cell_refs_indexes}, i

    def deserialize(self) -> typing.List[Cell]:
        header = self.deserialize_boc_header(self.data)
        cells_data = header['cells_data']
        cells_num = header['cells_num']
        cells_array = []

        i = 0
        for _ in range(cells_num):
            cell, i = self.deserialize_cell(cells_data, i, header['size_bytes'])
            cells_array.append(cell)
        if i != len(cells_data):
            raise BocError('cells data size does not match tot_cells_size')

        # refs always point forward, so build cells from the last one
        results: typing.List[typing.Optional[Cell]] = [None] * cells_num
        for ci in reversed(range(cells_num)):
            refs = []
            for r in cells_array[ci]['refs']:
                if r >= cells_num:
                    raise BocError(f'ref index {r} is out of {cells_num} cells')
                if r <= ci:
                    raise BocError('topological order is broken')
                refs.append(results[r])
            results[ci] = Cell(cells_array[ci]['bits'], refs)

        logger.debug(f'deserialized {cells_num} cells from {self.data_len} bytes boc')
        return [results[ri] for ri in header['root_list']]
