import io
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Подключаем исходники
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from config import Settings  # noqa: E402
from storage import StorageLayout  # noqa: E402
from web_app.server import create_app  # noqa: E402

BASE_URL = "http://photos.test"


def image_bytes(size=(800, 600), fmt="PNG", mode="RGB") -> bytes:
    """Сгенерировать настоящее изображение в памяти."""
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 120, 40) if mode == "RGB" else None).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def upload_root(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_root):
    return Settings(
        upload_dir=str(upload_root),
        public_base_url=BASE_URL,
        thumbnail_width=200,
        listen=False,
    )


@pytest.fixture
def layout(upload_root):
    return StorageLayout(upload_root, BASE_URL)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
