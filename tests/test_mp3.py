import pytest

from livemedia.mp3 import Mp3Parser


def test_default_sample_rate():
    assert Mp3Parser().sample_rate() == 44100


@pytest.mark.parametrize(
    "third_byte, rate",
    [(0x90, 44100), (0x94, 48000), (0x98, 32000)],
)
def test_parse_rate_index(third_byte, rate):
    parser = Mp3Parser()
    parser.parse(bytes((0xFF, 0xFB, third_byte)))
    assert parser.sample_rate() == rate


def test_reserved_index_raises():
    with pytest.raises(ValueError, match="invalid rate index"):
        Mp3Parser().parse(b"\xff\xfb\x9c")


def test_short_data_raises():
    with pytest.raises(ValueError, match="mp3data"):
        Mp3Parser().parse(b"\xff\xfb")


def test_failed_parse_keeps_previous_rate():
    parser = Mp3Parser()
    parser.parse(b"\xff\xfb\x94")
    with pytest.raises(ValueError):
        parser.parse(b"\xff\xfb\x9c")
    assert parser.sample_rate() == 48000