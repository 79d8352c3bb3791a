import logging

import pytest
from bytesparse import Memory

from hexunpack.errors import AddressTooHighError
from hexunpack.errors import AddressTooLowError
from hexunpack.errors import LoadError
from hexunpack.errors import ParsingError
from hexunpack.errors import UnpackingError
from hexunpack.records import IhexRecord
from hexunpack.records import iter_records
from hexunpack.unpacker import FILL_VALUE
from hexunpack.unpacker import unpack
from hexunpack.unpacker import unpack_to_bytes
from hexunpack.unpacker import unpack_to_new_buffer

create_data = IhexRecord.create_data
create_eof = IhexRecord.create_end_of_file
create_ela = IhexRecord.create_extended_linear_address
create_esa = IhexRecord.create_extended_segment_address
create_sla = IhexRecord.create_start_linear_address
create_ssa = IhexRecord.create_start_segment_address


def new_buffer(size):
    return bytearray([FILL_VALUE]) * size


def reference_image(records, size):
    memory = Memory()
    extension = 0
    for record in records:
        if record.tag.is_data():
            memory.write(extension + record.address, record.data)
        elif record.tag == record.Tag.EXTENDED_LINEAR_ADDRESS:
            extension = record.data_to_int() << 16
        elif record.tag == record.Tag.EXTENDED_SEGMENT_ADDRESS:
            extension = record.data_to_int() << 4
        elif record.tag.is_eof():
            break

    values = [memory.peek(address) for address in range(size)]
    return bytes(FILL_VALUE if value is None else value for value in values)


def failing_source(records, exc):
    yield from records
    raise exc


class TrackedSource:

    def __init__(self, records):
        self.records = list(records)
        self.pulled = 0

    def __iter__(self):
        for record in self.records:
            self.pulled += 1
            yield record


def test_fill_value():
    assert FILL_VALUE == 0xFF


def test_unpack_scenario_whole_buffer():
    records = [create_data(0, b'\xAA\xBB\xCC\xDD'), create_eof()]
    buffer = new_buffer(4)
    used_bytes = unpack(records, buffer, 0)
    assert buffer == b'\xAA\xBB\xCC\xDD'
    assert used_bytes == 4


def test_unpack_scenario_linear_beyond_buffer():
    records = [
        create_data(0, b'\x01\x02'),
        create_ela(0x0001),
        create_data(0, b'\x03'),
        create_eof(),
    ]
    buffer = new_buffer(16)

    with pytest.raises(AddressTooHighError) as info:
        unpack(records, buffer, 0)

    assert info.value.address == 65537
    assert info.value.size == 16
    assert str(info.value) == 'Address (65537) greater than binary size (16)'
    assert buffer == b'\x01\x02' + (b'\xFF' * 14)


def test_unpack_empty():
    buffer = new_buffer(8)
    assert unpack([], buffer) == 0
    assert buffer == b'\xFF' * 8


def test_unpack_disjoint():
    records = [
        create_data(0x0000, b'abc'),
        create_data(0x0008, b'defg'),
        create_data(0x0004, b'h'),
        create_eof(),
    ]
    buffer = new_buffer(16)
    used_bytes = unpack(records, buffer)
    assert used_bytes == 3 + 4 + 1
    assert buffer == b'abc\xFFh\xFF\xFF\xFFdefg\xFF\xFF\xFF\xFF'
    assert bytes(buffer) == reference_image(records, 16)


def test_unpack_untouched_keep_fill():
    records = [create_data(0x0010, b'\x00' * 16)]
    buffer = new_buffer(64)
    unpack(records, buffer)
    assert buffer[:0x10] == b'\xFF' * 0x10
    assert buffer[0x10:0x20] == b'\x00' * 0x10
    assert buffer[0x20:] == b'\xFF' * 0x20


def test_unpack_does_not_fill():
    buffer = bytearray(4)
    unpack([create_data(1, b'\xFF')], buffer)
    assert buffer == b'\x00\xFF\x00\x00'


def test_unpack_overlapping_last_wins():
    records = [
        create_data(0x0000, b'AAAAAAAA'),
        create_data(0x0002, b'BBBB'),
        create_data(0x0005, b'CCCCCC'),
        create_data(0x0003, b'D'),
        create_eof(),
    ]
    buffer = new_buffer(16)
    used_bytes = unpack(records, buffer)
    assert buffer == b'AABDBCCCCCC\xFF\xFF\xFF\xFF\xFF'
    assert used_bytes == 8 + 4 + 6 + 1
    assert bytes(buffer) == reference_image(records, 16)


def test_unpack_overlapping_extensions():
    records = [
        create_esa(0x0001),
        create_data(0x0000, b'abcdefgh'),
        create_ela(0x0000),
        create_data(0x0014, b'XYZ'),
        create_esa(0x0000),
        create_data(0x0010, b'!'),
    ]
    buffer = new_buffer(32)
    used_bytes = unpack(records, buffer)
    assert used_bytes == 8 + 3 + 1
    assert bytes(buffer) == reference_image(records, 32)
    assert buffer[0x10:0x18] == b'!bcdXYZh'


def test_unpack_boundary_inclusive():
    buffer = new_buffer(8)
    used_bytes = unpack([create_data(0x0004, b'wxyz')], buffer)
    assert used_bytes == 4
    assert buffer == b'\xFF\xFF\xFF\xFFwxyz'


def test_unpack_boundary_exceeded():
    buffer = new_buffer(8)
    records = [create_data(0x0005, b'wxyz')]

    with pytest.raises(AddressTooHighError) as info:
        unpack(records, buffer)

    assert info.value.address == 9
    assert info.value.size == 8
    assert buffer == b'\xFF' * 8


def test_unpack_rejects_whole_record():
    buffer = new_buffer(8)
    records = [
        create_data(0x0000, b'ab'),
        create_data(0x0006, b'cdef'),
        create_data(0x0002, b'gh'),
    ]

    with pytest.raises(AddressTooHighError):
        unpack(records, buffer)

    assert buffer == b'ab\xFF\xFF\xFF\xFF\xFF\xFF'


def test_unpack_zero_size_buffer():
    buffer = bytearray()
    assert unpack([create_data(0, b'')], buffer) == 0

    with pytest.raises(AddressTooHighError) as info:
        unpack([create_data(0, b'a')], buffer)
    assert info.value.address == 1
    assert info.value.size == 0


def test_unpack_extended_linear_address():
    buffer = new_buffer(0x10010)
    records = [create_ela(0x0001), create_data(0x0008, b'z')]
    assert unpack(records, buffer) == 1
    assert buffer[0x10008] == ord('z')
    assert buffer.count(0xFF) == len(buffer) - 1


def test_unpack_extended_linear_address_base_offset():
    buffer = new_buffer(0x20)
    records = [create_ela(0x0800), create_data(0x0010, b'z')]
    unpack(records, buffer, base_offset=0x08000000)
    assert buffer[0x10] == ord('z')
    assert buffer.count(0xFF) == len(buffer) - 1


def test_unpack_extended_segment_address():
    buffer = new_buffer(0x20)
    records = [create_esa(0x0001), create_data(0x0002, b'a')]
    unpack(records, buffer)
    assert buffer[0x12] == ord('a')
    assert buffer.count(0xFF) == len(buffer) - 1


def test_unpack_extended_segment_address_base_offset():
    buffer = new_buffer(0x20)
    records = [create_esa(0x1000), create_data(0x0005, b'b')]
    unpack(records, buffer, base_offset=0x10000)
    assert buffer[0x05] == ord('b')
    assert buffer.count(0xFF) == len(buffer) - 1


def test_unpack_segment_and_linear_shifts_differ():
    records_esa = [create_esa(0x0001), create_data(0x0000, b'S')]
    records_ela = [create_ela(0x0001), create_data(0x0000, b'L')]

    buffer = new_buffer(0x20)
    unpack(records_esa, buffer)
    assert buffer.index(b'S') == 0x10

    with pytest.raises(AddressTooHighError) as info:
        unpack(records_ela, new_buffer(0x20))
    assert info.value.address == 0x10001


def test_unpack_most_recent_extension_wins():
    buffer = new_buffer(0x100)
    records = [
        create_ela(0x0001),
        create_esa(0x0008),
        create_data(0x0001, b'x'),
        create_esa(0x0000),
        create_data(0x0001, b'y'),
    ]
    unpack(records, buffer)
    assert buffer[0x81] == ord('x')
    assert buffer[0x01] == ord('y')


def test_unpack_base_offset_before_extension():
    buffer = new_buffer(0x10)
    unpack([create_data(0x0003, b'q')], buffer, base_offset=0x08000000)
    assert buffer[0x03] == ord('q')


def test_unpack_address_too_low():
    buffer = new_buffer(0x10)
    records = [
        create_ela(0x0000),
        create_data(0x0100, b'a'),
        create_data(0x00FF, b'b'),
    ]

    with pytest.raises(AddressTooLowError) as info:
        unpack(records, buffer, base_offset=0x100)

    assert info.value.address == -1
    assert info.value.base_offset == 0x100
    assert buffer == b'a' + (b'\xFF' * 15)


def test_unpack_address_too_low_unused_extension():
    buffer = new_buffer(0x10)
    records = [
        create_ela(0x0800),
        create_data(0x0000, b'a'),
        create_ela(0x0000),
        create_ssa(0x08000000),
        create_eof(),
    ]
    assert unpack(records, buffer, base_offset=0x08000000) == 1
    assert buffer[0] == ord('a')


def test_unpack_end_of_file_halts():
    buffer = new_buffer(8)
    source = TrackedSource([
        create_data(0x0000, b'a'),
        create_eof(),
        create_data(0x0001, b'b'),
        create_data(0x0100, b'c'),
    ])
    used_bytes = unpack(source, buffer)
    assert used_bytes == 1
    assert buffer == b'a' + (b'\xFF' * 7)
    assert source.pulled == 2


def test_unpack_end_of_file_not_required():
    buffer = new_buffer(4)
    used_bytes = unpack([create_data(0x0001, b'xy')], buffer)
    assert used_bytes == 2
    assert buffer == b'\xFFxy\xFF'


def test_unpack_start_addresses_ignored():
    buffer = new_buffer(0x20)
    records = [
        create_sla(0xFFFFFFFF),
        create_esa(0x0001),
        create_ssa(0x12345678),
        create_data(0x0000, b'a'),
        create_sla(0x00000000),
        create_data(0x0001, b'b'),
        create_ssa(0x00000000),
        create_eof(),
    ]
    used_bytes = unpack(records, buffer)
    assert used_bytes == 2
    assert buffer[0x10:0x12] == b'ab'
    assert buffer.count(0xFF) == len(buffer) - 2


def test_unpack_start_addresses_only():
    buffer = new_buffer(4)
    records = [create_sla(0x12345678), create_ssa(0x00003800), create_eof()]
    assert unpack(records, buffer) == 0
    assert buffer == b'\xFF' * 4


def test_unpack_parsing_error():
    buffer = new_buffer(8)
    cause = ValueError('wrong checksum')
    source = failing_source([create_data(0x0000, b'ab')], cause)

    with pytest.raises(ParsingError) as info:
        unpack(source, buffer)

    assert info.value.cause is cause
    assert info.value.__cause__ is cause
    assert buffer == b'ab' + (b'\xFF' * 6)


def test_unpack_parsing_error_stops():
    buffer = new_buffer(8)
    lines = (b':0200000061623B\r\n'
             b':02000200636435\r\n'
             b'garbage\r\n'
             b':0200040065662F\r\n')

    with pytest.raises(ParsingError) as info:
        unpack(iter_records(lines), buffer)

    assert 'line 3: syntax error' in str(info.value)
    assert buffer == b'abcd\xFF\xFF\xFF\xFF'


def test_unpack_other_errors_propagate():
    source = failing_source([], KeyError('boom'))
    with pytest.raises(KeyError):
        unpack(source, new_buffer(4))


def test_unpack_memoryview():
    backing = new_buffer(8)
    view = memoryview(backing)[2:6]
    used_bytes = unpack([create_data(0x0001, b'xyz')], view)
    assert used_bytes == 3
    assert backing == b'\xFF\xFF\xFFxyz\xFF\xFF'


def test_unpack_raises_base_offset():
    with pytest.raises(ValueError, match='negative base offset'):
        unpack([], new_buffer(4), -1)

    with pytest.raises(TypeError):
        unpack([], new_buffer(4), 4.0)


def test_unpack_logs_records(caplog):
    records = [create_ela(0x0000), create_data(0x0000, b'a')]
    with caplog.at_level(logging.DEBUG, logger='hexunpack.unpacker'):
        unpack(records, new_buffer(4))
    messages = [r.getMessage() for r in caplog.records if r.name == 'hexunpack.unpacker']
    assert len(messages) == 2
    assert messages[0].startswith('base_address=0x0000 record=<IhexRecord ')


def test_unpack_errors_hierarchy():
    assert issubclass(ParsingError, UnpackingError)
    assert issubclass(AddressTooHighError, UnpackingError)
    assert issubclass(AddressTooLowError, UnpackingError)
    assert issubclass(UnpackingError, LoadError)


def test_unpack_to_new_buffer():
    records = [create_data(0x0001, b'abc'), create_eof()]
    buffer, used_bytes = unpack_to_new_buffer(records, 6)
    assert isinstance(buffer, bytearray)
    assert buffer == b'\xFFabc\xFF\xFF'
    assert used_bytes == 3


def test_unpack_to_new_buffer_base_offset():
    records = [create_ela(0x0001), create_data(0x0001, b'abc')]
    buffer, used_bytes = unpack_to_new_buffer(records, 4, 0x10000)
    assert buffer == b'\xFFabc'
    assert used_bytes == 3


def test_unpack_to_new_buffer_raises():
    with pytest.raises(AddressTooHighError):
        unpack_to_new_buffer([create_data(0x0004, b'a')], 4)

    with pytest.raises(ValueError, match='negative binary size'):
        unpack_to_new_buffer([], -1)

    with pytest.raises(TypeError):
        unpack_to_new_buffer([], 4.0)

    with pytest.raises(TypeError):
        unpack_to_bytes([], '4')


def test_unpack_to_bytes():
    records = [create_data(0x0000, b'\xAA\xBB'), create_eof()]
    image, used_bytes = unpack_to_bytes(records, 3)
    assert isinstance(image, bytes)
    assert image == b'\xAA\xBB\xFF'
    assert used_bytes == 2


def test_unpack_to_bytes_empty():
    image, used_bytes = unpack_to_bytes([], 5)
    assert image == b'\xFF' * 5
    assert used_bytes == 0
