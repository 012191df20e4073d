# livemedia

Pure-Python building blocks for live audio/video streaming:

- **AMF0 and AMF3** encoding and decoding (`livemedia.amf`), including
  `@setDataFrame` metadata rewriting.
- **FLV** tag header parsing, demuxing and an FLV file writer (`livemedia.flv`).
- **MPEG-TS** muxing with PAT/PMT generation (`livemedia.ts`) and the
  MPEG-2 CRC-32 (`livemedia.crc32`).
- **AAC** (ADTS framing) and **MP3** sample-rate parsing (`livemedia.aac`,
  `livemedia.mp3`).
- **Packet and timing types** (`livemedia.av`).
- **Server configuration** loaded from and written to YAML (`livemedia.config`).

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Packets

`livemedia.av.Packet` is a dataclass holding one audio, video or metadata
payload (`is_audio`, `is_video`, `is_metadata`, `timestamp`, `stream_id`,
`header`, `data`). `livemedia.av.Info` identifies a stream reader or writer.
`livemedia.av.RWBase` keeps the last audio and video timestamps
(`rec_timestamp`, `calc_base_timestamp`) and tracks liveness: `alive()` is
true while less than `timeout` seconds have passed since `set_pre_time()`.

## AMF

Values are written to and read from binary streams such as `io.BytesIO`.

```python
import io

from livemedia.amf.encoder_amf0 import Encoder
from livemedia.amf.decoder_amf0 import Decoder

buf = io.BytesIO()
Encoder().encode(buf, {"foo": "bar"}, 0)     # version 0 = AMF0, 3 = AMF3
buf.seek(0)
print(Decoder().decode(buf, 0))              # {'foo': 'bar'}
```

`Encoder` and `Decoder` handle AMF0 and inherit the AMF3 methods of
`livemedia.amf.encoder_amf3.Amf3Encoder` and
`livemedia.amf.decoder_amf3.Amf3Decoder`. Every AMF type has its own method,
e.g. `Encoder.encode_amf0_ecma_array`, `Encoder.encode_amf0_strict_array`,
`Decoder.decode_amf0_typed_object`, `Amf3Encoder.encode_amf3_object` and
`Amf3Decoder.decode_amf3_object`. Encoders return the number of bytes written.
`Decoder.decode_batch` decodes values until one fails and returns those read
so far. Externalizable AMF3 classes other than the built-in Flex message types
can be decoded by registering a function with
`Amf3Decoder.register_external_handler(name, handler)`.

Errors are raised as `livemedia.amf.types.AmfError`. The same module holds the
`Trait` and `TypedObject` dataclasses, the marker constants and the stream
helpers (`read_bytes`, `write_marker`, `assert_marker`, `dump`, ...).

FLV script data can be normalised with
`livemedia.amf.metadata.meta_data_reform(data, flag)`, which adds (`ADD`) or
strips (`DEL`) the leading `@setDataFrame` string.

## MPEG-TS

`livemedia.ts.Muxer.mux(packet, writer)` splits a `Packet` into 188-byte
transport-stream packets written to any object with a `write` method; with a
writer of `None` the continuity counters still advance. Video packets need a
header with `composition_time` and `is_key_frame()`, such as a
`livemedia.flv.Tag`. `Muxer.pat()` and `Muxer.pmt(sound_format, has_video)`
return the program tables.

```python
from livemedia.crc32 import gen_crc32

gen_crc32(b"\x00\xb0\x0d\x00\x01\xc1\x00\x00\x00\x01\xf0\x01")
```

## FLV

`livemedia.flv.Tag.parse_media_tag_header(data, is_video)` decodes the audio
or video header of an FLV tag body and returns its length. `livemedia.flv.Demuxer`
attaches the parsed header to a packet: `demux_header` leaves the payload as it
is, `demux` strips the header from it and raises `AvcEndSequence` for an AVC
end-of-sequence tag.

`livemedia.flv.FlvWriter(app, title, url, file)` writes the FLV file header on
creation and each packet as a tag through `write(packet)`; metadata packets
have their `@setDataFrame` prefix removed. `close()` closes the file once and
releases any thread blocked in `wait()`.

## Codec parsers

- `livemedia.aac.AacParser.parse(data, packet_type, writer)` records the
  AudioSpecificConfig from a sequence header and writes raw frames wrapped in
  ADTS headers; `sample_rate()` falls back to 44100 for an unknown index.
- `livemedia.mp3.Mp3Parser.parse(data)` reads the sampling frequency from an
  MP3 frame header; `sample_rate()` defaults to 44100.

Both raise `ValueError` for data they cannot use.

## Configuration

`livemedia.config.load_config(path)` reads a YAML file over the defaults into a
`ServerConfig` and sets the level of the `livemedia` logger from `level`.
`ServerConfig.to_yaml()` serialises the settings, leaving out empty and zero
values. `generate_config(path)` produces an example configuration, writes it to
`path` unless that is omitted or is the default name `livemedia.yaml` (in which
case it is printed), and returns the text.

| key                      | default          |
|--------------------------|------------------|
| `level`                  | *(unset)*        |
| `rtmp_addr`              | `0.0.0.0:1935`   |
| `web_addr`               | `127.0.0.1:7001` |
| `hls_keep_after_end`     | `false`          |
| `hls_keep_ts_cache`      | `1m0s`           |
| `rtmp_write_timeout`     | `10`             |
| `hls_history_count`      | `3`              |
| `rtmp_enable_tls_verify` | `true`           |
| `rtmp_gop_num`           | `1`              |
| `flv_api_info`           | `false`          |
| `pusher`                 | `{}`             |

## What this package does not do

It is a library of formats and codecs only. It has no command to run and no
network servers: there is no RTMP listener, no HTTP-FLV or HLS web server, and
the addresses and options in `ServerConfig` are read and written but not acted
on. It has no H.264 parser, so video payloads are not converted to Annex B
before TS muxing.