import pytest

from relaydns.header import (
    DNSError,
    Flags,
    FormatError,
    Header,
    MalformedHeader,
    NameErrorResponse,
    NotImplementedQuery,
    Refused,
    ServerFailure,
    UnsupportedRcode,
    parse_header,
)

QUERY_HEADER = bytes([0x12, 0x34, 0x01, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00])


def _header_with(flags=0x0100, qdcount=1):
    return Header(id=0x1234, flags=flags, qdcount=qdcount).encode()


def test_parse_valid_query():
    header = parse_header(QUERY_HEADER)
    assert header == Header(id=0x1234, flags=0x0100, qdcount=1)


def test_flag_fields_of_recursion_desired():
    flags = Header(flags=0x0100).flag_fields()
    assert flags == Flags(rd=1)


def test_encode_round_trip():
    header = Header(id=0xBEEF, flags=0x8180, qdcount=2, ancount=3, nscount=4, arcount=5)
    assert Header.from_bytes(header.encode()) == header


def test_encode_matches_wire():
    assert Header(id=0x1234, flags=0x0100, qdcount=1).encode() == QUERY_HEADER


@pytest.mark.parametrize("value", range(0, 65536, 97))
def test_flags_round_trip(value):
    assert Flags.from_int(value).to_int() == value


def test_set_flags_response_bit():
    header = Header(flags=0xFFFF)
    header.set_flags(1, 0, 0, 0, 0, 0, 0, 0)
    assert header.flag_fields() == Flags(qr=1)
    assert header.flags >> 15 == 1


def test_set_flags_masks_wide_fields():
    header = Header()
    header.set_flags(0, 0x1F, 0, 0, 0, 0, 0xF, 0x1F)
    fields = header.flag_fields()
    assert (fields.opcode, fields.z, fields.rcode) == (0xF, 0x7, 0xF)


@pytest.mark.parametrize(
    "rcode, error",
    [
        (1, FormatError),
        (2, ServerFailure),
        (3, NameErrorResponse),
        (4, NotImplementedQuery),
        (5, Refused),
        (6, UnsupportedRcode),
        (15, UnsupportedRcode),
    ],
)
def test_rcode_errors(rcode, error):
    with pytest.raises(error):
        parse_header(_header_with(flags=0x0100 | rcode))


def test_nonzero_opcode_not_implemented():
    with pytest.raises(NotImplementedQuery):
        parse_header(_header_with(flags=Flags(opcode=2, rd=1).to_int()))


def test_zero_qdcount():
    with pytest.raises(MalformedHeader, match="QDCOUNT is 0"):
        parse_header(_header_with(qdcount=0))


def test_short_message():
    with pytest.raises(MalformedHeader, match="too short"):
        parse_header(QUERY_HEADER[:11])


def test_error_messages_and_hierarchy():
    assert str(FormatError()) == "the server was unable to interpret the query"
    with pytest.raises(DNSError):
        parse_header(_header_with(flags=0x0105))