import json

from rpc.framer import StreamFramer

MESSAGES = [
    {"method": "system.listTools", "id": 1},
    {"method": "get_market_depth", "params": {"symbol": "BTC/USDT", "exchange": "binance"}, "id": 2},
    {"method": "initialize", "id": "three"},
]
STREAM = "".join(json.dumps(m) + "\n" for m in MESSAGES)


def test_single_chunk_yields_all_messages():
    assert StreamFramer().feed(STREAM) == MESSAGES


def test_byte_by_byte_feeding_matches_single_chunk():
    framer = StreamFramer()
    out = []
    for b in STREAM.encode("utf-8"):
        out.extend(framer.feed(bytes([b])))
    assert out == MESSAGES
    assert framer.pending == ""


def test_arbitrary_split_points():
    data = STREAM.encode("utf-8")
    for cut in range(1, len(data)):
        framer = StreamFramer()
        out = framer.feed(data[:cut]) + framer.feed(data[cut:])
        assert out == MESSAGES


def test_no_newline_emits_nothing_and_retains_buffer():
    framer = StreamFramer()
    assert framer.feed('{"method": "initialize", "id": 1}') == []
    assert framer.pending == '{"method": "initialize", "id": 1}'
    assert framer.feed("\n") == [{"method": "initialize", "id": 1}]
    assert framer.pending == ""


def test_malformed_line_skipped_without_aborting_stream():
    framer = StreamFramer()
    out = framer.feed('{"id": 1, "method": "a"}\n{not json\n{"id": 2, "method": "b"}\n')
    assert [m["id"] for m in out] == [1, 2]


def test_blank_and_whitespace_lines_skipped():
    framer = StreamFramer()
    out = framer.feed('\n   \n\t{"id": 1}  \r\n\n')
    assert out == [{"id": 1}]


def test_multibyte_character_split_across_chunks():
    payload = json.dumps({"method": "echo", "params": {"text": "€ü✓"}, "id": 1}, ensure_ascii=False) + "\n"
    data = payload.encode("utf-8")
    cut = data.index("€".encode("utf-8")) + 1

    framer = StreamFramer()
    assert framer.feed(data[:cut]) == []
    assert framer.feed(data[cut:]) == [{"method": "echo", "params": {"text": "€ü✓"}, "id": 1}]


def test_non_object_json_lines_are_passed_through():
    # shape validation belongs to the engine
    assert StreamFramer().feed("[1, 2]\n42\n") == [[1, 2], 42]


def test_flush_returns_unterminated_tail():
    framer = StreamFramer()
    framer.feed('{"id": 1}\n{"id": 2')
    assert framer.flush() == '{"id": 2'
    assert framer.pending == ""
    assert framer.flush() == ""
