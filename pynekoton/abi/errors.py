class AbiError(BaseException):
    pass


class AbiTypeError(AbiError):
    """
    Unknown or malformed ABI type string
    """
    pass


class AbiIdMismatchError(AbiError):
    """
    Function or event id in a body does not match the expected one
    """
    pass


class AbiValueError(AbiError):
    """
    Value can not be encoded with the parameter type: wrong python type,
    wrong fixed bytes length, missing tuple field, etc.
    """
    pass
