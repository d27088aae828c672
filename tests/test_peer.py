import asyncio
import io

from tqdm import tqdm

from chatrelay.peer.__main__ import Args, Relay, bridge


class MemoryWriter:
    def __init__(self):
        self.data = b""
        self.drains = 0

    def write(self, data: bytes):
        self.data += data

    async def drain(self):
        self.drains += 1


def make_reader(*chunks: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return reader


def test_default_args():
    args = Args(underscores_to_dashes=True).parse_args([])
    assert args.host == "localhost"
    assert args.port == 10000
    assert not args.progress


def test_relay_copies_until_eof():
    async def scenario():
        writer = MemoryWriter()
        total = await Relay(make_reader(b"abc", b"\x00def"), writer).serve()
        return writer, total

    writer, total = asyncio.run(scenario())
    assert writer.data == b"abc\x00def"
    assert total == 7
    assert writer.drains >= 1


def test_relay_progress():
    async def scenario(pbar):
        await Relay(make_reader(b"x" * 10, b"y" * 5), MemoryWriter(), progress=pbar).serve()

    with tqdm(file=io.StringIO()) as pbar:
        asyncio.run(scenario(pbar))
        assert pbar.n == 15


def test_bridge_half_closes_and_drains_replies():
    async def scenario():
        reply_reader = make_reader(b"partial", eof=False)
        reply_writer = MemoryWriter()
        half_closed = []

        def half_close():
            # The relay answers the half-close with its last bytes, then closes.
            half_closed.append(True)
            reply_reader.feed_data(b" reply")
            reply_reader.feed_eof()

        await asyncio.wait_for(
            bridge(
                Relay(make_reader(b"hi"), MemoryWriter()),
                Relay(reply_reader, reply_writer),
                half_close=half_close,
            ),
            timeout=5,
        )
        return half_closed, reply_writer

    half_closed, reply_writer = asyncio.run(scenario())
    assert half_closed == [True]
    assert reply_writer.data == b"partial reply"


def test_bridge_cancels_input_when_relay_closes():
    async def scenario():
        typed_writer = MemoryWriter()
        endless = Relay(make_reader(b"typed", eof=False), typed_writer)
        closed = Relay(make_reader(b"bye"), MemoryWriter())
        half_closed = []
        await asyncio.wait_for(
            bridge(endless, closed, half_close=lambda: half_closed.append(True)),
            timeout=5,
        )
        return typed_writer, half_closed

    typed_writer, half_closed = asyncio.run(scenario())
    assert typed_writer.data == b"typed"
    assert half_closed == []
