"""Test configuration for xray-pipeline."""

import stat
import tempfile
from pathlib import Path

import httpx
import pytest

from xray_pipeline.core.config import AttributionConfig, Config, ToolsConfig

FAKE_APKTOOL = """#!/bin/sh
out=""
while [ $# -gt 0 ]; do
    if [ "$1" = "-o" ]; then
        out="$2"
        shift
    fi
    shift
done
mkdir -p "$out"
echo '<manifest package="com.example.app"/>' > "$out/AndroidManifest.xml"
echo "I: Using Apktool 2.9.3"
"""

FAILING_APKTOOL = """#!/bin/sh
echo "I: Using Apktool 2.9.3"
echo "brut.androlib.AndrolibException: could not decode arsc file" >&2
exit 1
"""

SLOW_APKTOOL = """#!/bin/sh
out=""
while [ $# -gt 0 ]; do
    if [ "$1" = "-o" ]; then
        out="$2"
        shift
    fi
    shift
done
echo $$ > "$out.pid.tmp" && mv "$out.pid.tmp" "$out.pid"
exec sleep 30
"""


def _write_script(path: Path, content: str) -> Path:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_apktool(temp_dir):
    """An executable standing in for apktool that writes a manifest to -o."""
    return _write_script(temp_dir / "apktool", FAKE_APKTOOL)


@pytest.fixture
def failing_apktool(temp_dir):
    """An executable standing in for apktool that always fails."""
    return _write_script(temp_dir / "apktool-broken", FAILING_APKTOOL)


@pytest.fixture
def config(temp_dir, fake_apktool):
    """Configuration rooted in the temporary directory."""
    return Config(
        data_dir=temp_dir / "data",
        unpack_dir=temp_dir / "unpacked",
        geoip_host="http://geo.test/json",
        attribution=AttributionConfig(endpoint="http://tracker.test", backoff_seconds=0),
        tools=ToolsConfig(apktool_path=fake_apktool),
    )


@pytest.fixture
def sample_apk(temp_dir):
    """Create a sample package file for testing.

    Returns:
        Path: The path to the created package file.
    """
    apk_path = temp_dir / "downloads" / "sample.apk"
    apk_path.parent.mkdir(parents=True)
    apk_path.write_bytes(b"PK\x03\x04")
    return apk_path


@pytest.fixture
def mock_http():
    """Build an AsyncClient whose requests are answered by a handler."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def slow_apktool(temp_dir):
    """An apktool stand-in that records its pid next to -o and then hangs."""
    return _write_script(temp_dir / "apktool-slow", SLOW_APKTOOL)


@pytest.fixture
def noexec_apktool(temp_dir):
    """An apktool script that is present but lacks execute permission."""
    path = temp_dir / "apktool-noexec"
    path.write_text(FAKE_APKTOOL)
    path.chmod(0o644)
    return path
