def bytes_to_uint(data: bytes) -> int:
    return int.from_bytes(data, 'big', signed=False)
