"""
Checksums of the TON wire formats:
crc16 (XMODEM) protects user-friendly addresses, crc32c (Castagnoli) protects serialized bags of cells.
"""


def _make_crc32c_table() -> list:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ 0x82F63B78 if crc & 1 else crc >> 1
        table.append(crc)
    return table


def _make_crc16_table() -> list:
    table = []
    for i in range(256):
        crc = i << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else crc << 1
        table.append(crc & 0xFFFF)
    return table


CRC32C_TABLE = _make_crc32c_table()
CRC16_TABLE = _make_crc16_table()


def crc32c(data: bytes) -> bytes:
    """
    :return: 4 bytes, little endian as it is stored in boc
    """
    crc = 0xFFFFFFFF
    for byte in data:
        crc = CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return (crc ^ 0xFFFFFFFF).to_bytes(4, 'little')


def crc16(data: bytes) -> bytes:
    """
    :return: 2 bytes, big endian as it is stored in user-friendly address
    """
    crc = 0
    for byte in data:
        crc = ((crc << 8) & 0xFFFF) ^ CRC16_TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc.to_bytes(2, 'big')
