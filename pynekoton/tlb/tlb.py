from abc import ABC, abstractmethod


class TlbError(BaseException):
    pass


class TlbScheme(ABC):
    """
    Structure with a fixed TL-B layout, written with Builder and read with Slice
    """
    @abstractmethod
    def serialize(self, *args): ...

    @classmethod
    @abstractmethod
    def deserialize(cls, *args): ...

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.__dict__}>'
