import json
import zlib

import pytest

from pynekoton.abi import AbiCodec, AbiError, AbiIdMismatchError, AbiTypeError, AbiValueError, ContractAbi, \
    FunctionCall
from pynekoton.boc import Address, CellUnderflowError, begin_cell
from pynekoton.crypto.signature import Signer, verify_sign
from pynekoton.tlb import ExternalOutMsgInfo, InternalMsgInfo, MessageAny, StateInit


ADDRESS = Address('0:' + '5a' * 32)

ABI = {
    'ABI version': 2,
    'version': '2.2',
    'functions': [
        {'name': 'constructor', 'inputs': [], 'outputs': []},
        {
            'name': 'sendValue',
            'inputs': [{'name': 'amount', 'type': 'uint64'}, {'name': 'bounce', 'type': 'bool'}],
            'outputs': [],
            'id': '0x1a2b3c4d',
        },
        {
            'name': 'getOwner',
            'inputs': [{'name': 'answerId', 'type': 'uint32'}],
            'outputs': [{'name': 'owner', 'type': 'address'}],
            'outputId': '0x8a2b3c4d',
        },
    ],
    'events': [
        {'name': 'Deposit', 'inputs': [{'name': 'sender', 'type': 'address'}, {'name': 'amount', 'type': 'grams'}]},
        {'name': 'Withdraw', 'inputs': [{'name': 'amount', 'type': 'uint128'}], 'id': '0x00000010'},
    ],
    'data': [
        {'name': 'owner', 'type': 'address'},
        {'name': 'counter', 'type': 'uint32'},
        {'name': 'note', 'type': 'string'},
    ],
}

DATA = {'owner': ADDRESS, 'counter': 7, 'note': 'hello'}


@pytest.fixture
def contract():
    return ContractAbi(json.dumps(ABI))


def test_parse(contract):
    assert contract.abi_version == 2
    assert contract.version == '2.2'
    assert set(contract.functions) == {'constructor', 'sendValue', 'getOwner'}
    assert set(contract.events) == {'Deposit', 'Withdraw'}
    assert list(contract.data) == ['owner', 'counter', 'note']
    assert contract.get_function('missing') is None
    assert ContractAbi(ABI).functions == contract.functions


def test_ids(contract):
    send_value = contract.get_function('sendValue')
    assert send_value.input_id == send_value.output_id == 0x1a2b3c4d

    constructor = contract.get_function('constructor')
    assert constructor.input_id == zlib.crc32(b'constructor')

    get_owner = contract.get_function('getOwner')
    assert get_owner.input_id == zlib.crc32(b'getOwner')
    assert get_owner.output_id == 0x8a2b3c4d
    assert get_owner.has_output
    assert not send_value.has_output

    assert contract.get_function_by_id(0x1a2b3c4d) is send_value
    assert contract.get_function_by_id(0x8a2b3c4d, output=True) is get_owner
    assert contract.get_event_by_id(0x10) is contract.get_event('Withdraw')
    assert contract.get_event('Deposit').id == zlib.crc32(b'Deposit')


def test_codec_is_shared():
    codec = AbiCodec()
    contract = ContractAbi(ABI, codec=codec)
    assert contract.get_function('sendValue').codec is codec
    assert contract.get_event('Deposit').codec is codec


def test_internal_input(contract):
    send_value = contract.get_function('sendValue')
    body = send_value.encode_internal_input({'amount': 1000, 'bounce': True})
    assert body.bit_length == 32 + 64 + 1
    assert body.begin_parse().load_uint(32) == 0x1a2b3c4d
    assert send_value.decode_input(body, internal=True) == {'amount': 1000, 'bounce': True}

    call = contract.decode_input(body, internal=True)
    assert isinstance(call, FunctionCall)
    assert call.function is send_value
    assert call.input == {'amount': 1000, 'bounce': True}


def test_id_mismatch(contract):
    body = contract.get_function('sendValue').encode_internal_input([1, False])
    with pytest.raises(AbiIdMismatchError):
        contract.get_function('getOwner').decode_input(body, internal=True)
    with pytest.raises(AbiIdMismatchError):
        contract.decode_input(begin_cell().store_uint(0xFFFFFFFF, 32).end_cell(), internal=True)
    with pytest.raises(AbiIdMismatchError):
        contract.decode_input(begin_cell().store_uint(1, 8).end_cell(), internal=True)


def test_external_input_signed(contract):
    signer = Signer.generate()
    send_value = contract.get_function('sendValue')
    unsigned = send_value.encode_external_input({'amount': 5, 'bounce': True}, public_key=signer.public_key,
                                                timeout=60, now=1000)
    assert unsigned.expire_at == 1060
    assert unsigned.hash == unsigned.payload.hash

    payload = unsigned.payload.begin_parse()
    assert payload.load_uint(32) == 0x1a2b3c4d
    assert payload.load_uint(64) == 1060
    assert payload.load_bool()
    assert payload.load_bytes(32) == signer.public_key

    body = unsigned.sign(signer)
    cs = body.begin_parse()
    assert cs.load_bool()
    signature = cs.load_bytes(64)
    assert verify_sign(signer.public_key, unsigned.hash, signature)
    assert signer.verify(unsigned.hash, signature)
    assert cs.to_cell() == unsigned.payload

    assert send_value.decode_input(body) == {'amount': 5, 'bounce': True}
    assert contract.decode_input(body).function is send_value


def test_external_input_unsigned(contract):
    send_value = contract.get_function('sendValue')
    unsigned = send_value.encode_external_input({'amount': 5, 'bounce': False}, now=0)
    body = unsigned.without_signature()
    assert body.bit_length == 1 + 32 + 64 + 1 + 64 + 1
    assert send_value.decode_input(body) == {'amount': 5, 'bounce': False}

    with pytest.raises(AbiValueError):
        unsigned.with_signature(b'short')
    with pytest.raises(AbiValueError):
        send_value.encode_external_input({'amount': 5, 'bounce': False}, public_key=b'\x00' * 31)


def test_signer():
    seed = bytes(range(32))
    signer = Signer(seed)
    assert Signer(seed).public_key == signer.public_key
    assert len(signer.public_key) == 32
    signature = signer.sign(b'data')
    assert len(signature) == 64
    assert signer.verify(b'data', signature)
    assert not signer.verify(b'other', signature)


def test_output(contract):
    get_owner = contract.get_function('getOwner')
    body = get_owner.encode_output({'owner': ADDRESS})
    assert get_owner.decode_output(body) == {'owner': ADDRESS}
    call = contract.decode_output(body)
    assert call.function is get_owner
    assert call.output == {'owner': ADDRESS}

    with pytest.raises(AbiIdMismatchError):
        get_owner.decode_output(get_owner.encode_internal_input({'answerId': 1}))


def test_init_data(contract):
    public_key = bytes(range(32))
    data = contract.encode_init_data(DATA, public_key=public_key)
    assert contract.decode_init_data(data) == (public_key, DATA)

    data = contract.encode_init_data(DATA)
    assert data.begin_parse().load_bit() == 0
    assert contract.decode_init_data(data) == (None, DATA)

    with pytest.raises(AbiValueError):
        contract.encode_init_data({'owner': ADDRESS, 'counter': 1})


def test_decode_fields(contract):
    data = contract.encode_init_data(DATA, public_key=bytes(32))
    assert contract.decode_fields(data) == DATA
    assert contract.decode_fields(StateInit(data=data)) == DATA


def test_decode_fields_partial(contract):
    # note is missing
    data = begin_cell().store_bit(0).store_address(ADDRESS).store_uint(7, 32).end_cell()
    with pytest.raises(CellUnderflowError):
        contract.decode_fields(data)
    assert contract.decode_fields(data, allow_partial=True) == {'owner': ADDRESS, 'counter': 7}

    # counter is cut, so note is skipped too
    data = begin_cell().store_bit(0).store_address(ADDRESS).store_uint(7, 16).end_cell()
    assert contract.decode_fields(data, allow_partial=True) == {'owner': ADDRESS}


def test_events(contract):
    deposit = contract.get_event('Deposit')
    withdraw = contract.get_event('Withdraw')

    deposit_body = deposit.encode_body({'sender': ADDRESS, 'amount': 10 ** 9})
    assert deposit.decode_message_body(deposit_body) == {'sender': ADDRESS, 'amount': 10 ** 9}
    with pytest.raises(AbiIdMismatchError):
        withdraw.decode_message_body(deposit_body)

    withdraw_body = withdraw.encode_body([42])
    messages = [
        MessageAny(ExternalOutMsgInfo(src=ADDRESS, created_lt=1, created_at=2), body=deposit_body),
        MessageAny(InternalMsgInfo(src=ADDRESS, dest=ADDRESS, value=1), body=withdraw_body),
        MessageAny(ExternalOutMsgInfo(src=ADDRESS), body=begin_cell().store_uint(0xDEAD, 32).end_cell()),
        MessageAny(ExternalOutMsgInfo(src=ADDRESS), body=withdraw_body),
    ]
    events = contract.decode_events(messages)
    assert events == [
        (deposit, {'sender': ADDRESS, 'amount': 10 ** 9}),
        (withdraw, {'amount': 42}),
    ]
    assert deposit.decode_message(messages[0]) == {'sender': ADDRESS, 'amount': 10 ** 9}


def test_internal_message(contract):
    send_value = contract.get_function('sendValue')
    message = send_value.encode_internal_message({'amount': 1, 'bounce': False}, value=10 ** 9, dest=ADDRESS,
                                                 bounce=False)
    parsed = MessageAny.from_boc(message.to_boc())
    assert parsed.is_internal
    assert parsed.dest == ADDRESS
    assert parsed.info.value == 10 ** 9
    assert not parsed.info.bounce
    assert contract.decode_input(parsed.body, internal=True).input == {'amount': 1, 'bounce': False}


def test_external_message(contract):
    signer = Signer.generate()
    state_init = StateInit(code=begin_cell().store_uint(1, 8).end_cell(), data=contract.encode_init_data(DATA))
    message = contract.get_function('sendValue').with_args({'amount': 3, 'bounce': True}).encode_external_message(
        ADDRESS, signer=signer, state_init=state_init, now=100
    )
    parsed = MessageAny.from_boc(message.to_boc())
    assert parsed.is_external_in
    assert parsed.src is None
    assert parsed.init == state_init
    assert contract.decode_input(parsed.body).input == {'amount': 3, 'bounce': True}


def test_invalid_abi():
    with pytest.raises(AbiError):
        ContractAbi('{not json')
    with pytest.raises(AbiError):
        ContractAbi('[]')
    broken = dict(ABI, data=[{'name': 'x', 'type': 'uint999'}])
    with pytest.raises(AbiTypeError):
        ContractAbi(broken)
    with pytest.raises(AbiValueError):
        ContractAbi(dict(ABI, events=[{'name': 'E', 'inputs': [], 'id': '0xzz'}]))


def test_from_file(tmp_path):
    path = tmp_path / 'contract.abi.json'
    path.write_text(json.dumps(ABI))
    contract = ContractAbi.from_file(str(path))
    assert set(contract.functions) == {f["name"] for f in ABI["functions"]}


def test_decode_transaction(contract):
    get_owner = contract.get_function('getOwner')
    in_msg = MessageAny(InternalMsgInfo(src=ADDRESS, dest=ADDRESS, value=1),
                        body=get_owner.encode_internal_input({'answerId': 9}))
    out_msgs = [
        MessageAny(ExternalOutMsgInfo(src=ADDRESS), body=contract.get_event('Withdraw').encode_body([1])),
        MessageAny(InternalMsgInfo(src=ADDRESS, dest=ADDRESS), body=get_owner.encode_output({'owner': ADDRESS})),
    ]
    call = contract.decode_transaction(in_msg, out_msgs)
    assert call.function is get_owner
    assert call.input == {'answerId': 9}
    assert call.output == {'owner': ADDRESS}

    call = get_owner.decode_transaction(in_msg, out_msgs[:1])
    assert call.input == {'answerId': 9}
    assert call.output == {}


def test_decode_external_transaction(contract):
    send_value = contract.get_function('sendValue')
    in_msg = send_value.encode_external_message({'amount': 3, 'bounce': False}, ADDRESS, signer=Signer.generate())
    call = contract.decode_transaction(in_msg)
    assert call.function is send_value
    assert call.input == {'amount': 3, 'bounce': False}
    assert call.output == {}


def test_decode_transaction_without_call(contract):
    assert contract.decode_transaction(None, []) is None
    empty = MessageAny(InternalMsgInfo(src=ADDRESS, dest=ADDRESS))
    assert contract.decode_transaction(empty, []) is None
    unknown = MessageAny(InternalMsgInfo(src=ADDRESS, dest=ADDRESS), body=begin_cell().store_uint(7, 32).end_cell())
    assert contract.decode_transaction(unknown, []) is None
    assert contract.get_function('sendValue').decode_transaction(unknown) is None
