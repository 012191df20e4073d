[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "livemedia"
version = "0.1.0"
description = "Building blocks for live streaming: AMF0/AMF3 codecs, FLV tags and writer, MPEG-TS muxing, AAC/MP3 parsing and server configuration."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "rtmp",
    "amf",
    "amf0",
    "amf3",
    "flv",
    "mpeg-ts",
    "aac",
    "mp3",
    "live streaming",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["livemedia"]

[tool.pytest.ini_options]
addopts = "-ra"
