"""Building blocks for live streaming: AMF codecs, FLV tags and writer, MPEG-TS muxing, AAC/MP3 parsing and configuration."""

__version__ = "0.1.0"