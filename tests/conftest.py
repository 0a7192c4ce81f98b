"""
Pytest configuration and fixtures for FS Image Server tests.

The ``tree`` fixture builds a small filesystem per test::

    data/
        img/                  base directory of most groups
            logo.png
            photo.jpg
            drawing.svg
            notes.txt
            fake.png          text content with an image extension
            sub/nested.png
            escape.png  ->    ../secret.png
            loop        ->    loop
        img2/evil.png         sibling sharing the "img" prefix
        secret.png            outside every group
        fallback.png
"""

import struct
import zlib
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fsis.api.main import create_app
from fsis.core.config import Settings


def make_png(width: int = 1, height: int = 1) -> bytes:
    """Build a valid, tiny RGB PNG."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    rows = b"".join(b"\x00" + b"\x00\x00\x00" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


JPEG_BYTES = (
    b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xdb\x00\x43\x00" + bytes(range(1, 65)) + b"\xff\xd9"
)

SVG_TEXT = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1">'
    '<rect width="1" height="1"/></svg>\n'
)


@pytest.fixture
def tree(tmp_path: Path) -> dict[str, Path]:
    """Create the test directory tree and return its notable paths."""
    data = tmp_path / "data"
    img = data / "img"
    (img / "sub").mkdir(parents=True)
    (data / "img2").mkdir()

    (img / "logo.png").write_bytes(make_png(2, 2))
    (img / "photo.jpg").write_bytes(JPEG_BYTES)
    (img / "drawing.svg").write_text(SVG_TEXT, encoding="utf-8")
    (img / "notes.txt").write_text("just some notes\n", encoding="utf-8")
    (img / "fake.png").write_text("this is not an image\n", encoding="utf-8")
    (img / "sub" / "nested.png").write_bytes(make_png())
    (data / "img2" / "evil.png").write_bytes(make_png())
    (data / "secret.png").write_bytes(make_png())
    (data / "fallback.png").write_bytes(make_png(3, 3))

    (img / "escape.png").symlink_to(data / "secret.png")
    (img / "loop").symlink_to(img / "loop")

    return {
        "data": data,
        "img": img,
        "img2": data / "img2",
        "secret": data / "secret.png",
        "fallback": data / "fallback.png",
    }


@pytest.fixture
def groups(tree: dict[str, Path]) -> dict[str, dict]:
    img = str(tree["img"])
    return {
        "photos": {
            "path": img,
            "fallback": str(tree["fallback"]),
            "mimetypes": ["image/png"],
        },
        "gallery": {
            "path": img,
            "mimetypes": ["image/png", "image/jpeg", "image/svg+xml"],
        },
        "private": {
            "path": img,
            "right": "fsis-private",
            "mimetypes": ["image/png"],
        },
        "broken": {
            "path": str(tree["data"] / "does-not-exist"),
            "fallback": str(tree["fallback"]),
            "mimetypes": ["image/png"],
        },
        "lost-fallback": {
            "path": img,
            "fallback": str(tree["data"] / "no-such-fallback.png"),
            "mimetypes": ["image/png"],
        },
    }


@pytest.fixture
def settings(groups: dict[str, dict]) -> Settings:
    return Settings(
        _env_file=None,
        fsis_groups=groups,
        role_rights={"staff": ["fsis-private"]},
        api_tokens={
            "staff-token": {"name": "Ada", "roles": ["staff"]},
            "user-token": {"name": "Bob"},
        },
        log_sample_rate=0.0,
    )


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against an app built for the test tree."""
    app = create_app(settings)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def staff_headers() -> dict[str, str]:
    return {"Authorization": "Bearer staff-token"}
