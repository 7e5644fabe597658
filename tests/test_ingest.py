import asyncio
import io
import logging
import re

import pytest
from PIL import Image

import ingest
from conftest import image_bytes
from error_handling import (
    EmptyBatchError,
    FileTooLargeError,
    TooManyFilesError,
    UploadProcessingError,
)
from ingest import ReceivedFile, UploadIngestor, generate_filename, safe_extension, stream_size


def _file(name="photo.png", data=None):
    data = image_bytes() if data is None else data
    return ReceivedFile(original_name=name, stream=io.BytesIO(data), size=len(data))


def _stored_files(folder):
    return sorted(p.name for p in folder.iterdir() if p.is_file())


def test_generate_filename_format():
    name = generate_filename("photos", ".jpg")
    assert re.fullmatch(r"photos-\d{13}-\d{1,9}\.jpg", name)


@pytest.mark.parametrize(
    "original, expected",
    [
        ("foto.JPG", ".JPG"),
        ("archive.tar.gz", ".gz"),
        ("noext", ""),
        ("", ""),
        ("weird.j?g", ""),
        ("../../evil.png", ".png"),
    ],
)
def test_safe_extension(original, expected):
    assert safe_extension(original) == expected


def test_stream_size_keeps_position():
    stream = io.BytesIO(b"0123456789")
    stream.seek(3)
    assert stream_size(stream) == 10
    assert stream.tell() == 3


def test_ingest_stores_originals_and_thumbnails(layout, upload_root):
    ingestor = UploadIngestor(layout, thumbnail_width=120)
    files = [_file("a.png", image_bytes((600, 300))), _file("b.jpg", image_bytes((400, 400), fmt="JPEG"))]

    report = asyncio.run(ingestor.ingest("Usuário de Teste", files))

    assert report.slug == "usuario-de-teste"
    assert not report.failed
    assert [o.original_name for o in report.outcomes] == ["a.png", "b.jpg"]
    folder = upload_root / "usuario-de-teste"
    names = [image.filename for image in report.stored]
    assert _stored_files(folder) == sorted(names)
    assert _stored_files(folder / "thumbnails") == sorted(names)
    assert names[0].endswith(".png") and names[1].endswith(".jpg")
    for image in report.stored:
        assert image.original_url == f"http://photos.test/uploads/usuario-de-teste/{image.filename}"
        assert image.thumbnail_url == (
            f"http://photos.test/uploads/usuario-de-teste/thumbnails/{image.filename}"
        )
        with Image.open(image.thumbnail_path) as thumb:
            assert thumb.width == 120
    with Image.open(report.stored[0].thumbnail_path) as thumb:
        assert thumb.size == (120, 60)


def test_original_bytes_are_kept(layout):
    data = image_bytes((50, 50))
    report = asyncio.run(UploadIngestor(layout).ingest("ana", [_file("x.png", data)]))
    assert report.stored[0].original_path.read_bytes() == data


def test_missing_name_uses_default_bucket(layout, upload_root):
    report = asyncio.run(UploadIngestor(layout).ingest(None, [_file()]))
    assert report.slug == "geral"
    assert len(_stored_files(upload_root / "geral")) == 1


def test_empty_batch_touches_nothing(layout, upload_root):
    with pytest.raises(EmptyBatchError) as excinfo:
        asyncio.run(UploadIngestor(layout).ingest("Ana", []))
    assert excinfo.value.message == "Nenhum arquivo foi enviado."
    assert not upload_root.exists()


def test_too_many_files(layout, upload_root):
    ingestor = UploadIngestor(layout, max_files=2)
    with pytest.raises(TooManyFilesError):
        asyncio.run(ingestor.ingest("Ana", [_file(), _file(), _file()]))
    assert not upload_root.exists()


def test_file_too_large(layout, upload_root):
    ingestor = UploadIngestor(layout, max_file_size=10)
    with pytest.raises(FileTooLargeError) as excinfo:
        asyncio.run(ingestor.ingest("Ana", [_file("big.png")]))
    assert excinfo.value.filename == "big.png"
    assert not upload_root.exists()


def test_one_bad_file_rolls_back_batch(layout, upload_root, caplog):
    files = [_file("good.png"), _file("bad.png", b"fake image data"), _file("good2.png")]

    with caplog.at_level(logging.ERROR), pytest.raises(UploadProcessingError):
        asyncio.run(UploadIngestor(layout).ingest("Ana", files))

    folder = upload_root / "ana"
    assert _stored_files(folder) == []
    assert _stored_files(folder / "thumbnails") == []
    assert "bad.png" in caplog.text


def test_partial_uploads_keep_successes(layout, upload_root):
    ingestor = UploadIngestor(layout, partial_uploads=True)
    files = [_file("good.png"), _file("bad.png", b"fake image data")]

    report = asyncio.run(ingestor.ingest("Ana", files))

    assert [o.ok for o in report.outcomes] == [True, False]
    assert report.failed[0].original_name == "bad.png"
    assert _stored_files(upload_root / "ana") == [report.stored[0].filename]
    assert _stored_files(upload_root / "ana" / "thumbnails") == [report.stored[0].filename]


def test_partial_uploads_all_failed_is_an_error(layout, upload_root):
    ingestor = UploadIngestor(layout, partial_uploads=True)
    with pytest.raises(UploadProcessingError):
        asyncio.run(ingestor.ingest("Ana", [_file("bad.png", b"nope")]))
    assert _stored_files(upload_root / "ana") == []


def test_name_clash_retries_without_overwriting(layout, upload_root, monkeypatch):
    dirs = layout.ensure_user_dirs("ana")
    (dirs.originals / "photos-1-1.png").write_bytes(b"existing")
    names = iter(["photos-1-1.png", "photos-1-2.png"])
    monkeypatch.setattr(ingest, "generate_filename", lambda field, ext: next(names))

    report = asyncio.run(UploadIngestor(layout).ingest("Ana", [_file()]))

    assert report.stored[0].filename == "photos-1-2.png"
    assert (dirs.originals / "photos-1-1.png").read_bytes() == b"existing"


def test_files_are_processed_concurrently_in_worker_threads(layout, monkeypatch):
    import threading
    import time

    active = 0
    max_active = 0
    threads = set()
    lock = threading.Lock()

    def fake_thumbnail(source, destination, width):
        nonlocal active, max_active
        with lock:
            threads.add(threading.current_thread().name)
            active += 1
            max_active = max(max_active, active)
        time.sleep(0.05)
        destination.write_bytes(b"thumb")
        with lock:
            active -= 1
        return width, width

    monkeypatch.setattr(ingest, "make_thumbnail", fake_thumbnail)

    report = asyncio.run(UploadIngestor(layout).ingest("Ana", [_file() for _ in range(4)]))

    assert len(report.stored) == 4
    assert max_active > 1
    assert threading.current_thread().name not in threads


def test_configured_default_bucket_is_slugified(layout, upload_root):
    ingestor = UploadIngestor(layout, default_slug="Fotos Gerais")

    report = asyncio.run(ingestor.ingest("@@@", [_file()]))

    assert report.slug == "fotos-gerais"
    assert len(_stored_files(upload_root / "fotos-gerais")) == 1


def test_failure_log_names_file_and_folder(layout, caplog):
    with caplog.at_level(logging.ERROR), pytest.raises(UploadProcessingError):
        asyncio.run(UploadIngestor(layout).ingest("Ana", [_file("bad.png", b"nope")]))
    assert "Failed to store bad.png for ana" in caplog.text
