from .tlb import TlbError, TlbScheme
from .message import MessageError, MessageType, TickTock, StateInit, CommonMsgInfo, InternalMsgInfo, ExternalMsgInfo, ExternalOutMsgInfo, MessageAny
