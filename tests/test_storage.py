import pytest

from config import THUMBNAILS_DIRNAME


def test_ensure_user_dirs_creates_originals_and_thumbnails(layout, upload_root):
    dirs = layout.ensure_user_dirs("joao-maria")
    assert dirs.originals == upload_root / "joao-maria"
    assert dirs.thumbnails == upload_root / "joao-maria" / THUMBNAILS_DIRNAME
    assert dirs.originals.is_dir()
    assert dirs.thumbnails.is_dir()


def test_ensure_user_dirs_is_idempotent(layout, upload_root):
    first = layout.ensure_user_dirs("festa2025")
    (first.originals / "keep.jpg").write_bytes(b"data")

    second = layout.ensure_user_dirs("festa2025")

    assert first == second
    assert sorted(p.name for p in upload_root.iterdir()) == ["festa2025"]
    assert sorted(p.name for p in second.originals.iterdir()) == ["keep.jpg", THUMBNAILS_DIRNAME]
    assert list(second.thumbnails.iterdir()) == []


@pytest.mark.parametrize("bad", ["", "..", "a/b", "Upper", "-x"])
def test_rejects_non_slug_folder(layout, bad):
    with pytest.raises(ValueError):
        layout.ensure_user_dirs(bad)


def test_public_urls(layout):
    assert layout.original_url("ana", "photos-1-2.jpg") == "http://photos.test/uploads/ana/photos-1-2.jpg"
    assert (
        layout.thumbnail_url("ana", "photos-1-2.jpg")
        == "http://photos.test/uploads/ana/thumbnails/photos-1-2.jpg"
    )


def test_ensure_root(layout, upload_root):
    assert not upload_root.exists()
    layout.ensure_root()
    layout.ensure_root()
    assert upload_root.is_dir()
