import pytest

from messenger.utils.files_deleter import FilesDeleter


@pytest.fixture
def deleter(tmp_path):
    images = tmp_path / "images"
    (images / "thumbnails").mkdir(parents=True)
    attachments = tmp_path / "attachments"
    attachments.mkdir()
    return FilesDeleter(images, attachments)


@pytest.mark.asyncio
async def test_delete_image_removes_thumbnail_too(deleter):
    image = deleter.images_directory / "cat.png"
    thumbnail = deleter.images_directory / "thumbnails" / "cat.png"
    image.write_bytes(b"img")
    thumbnail.write_bytes(b"thumb")

    await deleter.delete_image("cat.png")

    assert not image.exists()
    assert not thumbnail.exists()


@pytest.mark.asyncio
async def test_delete_image_without_thumbnail(deleter):
    image = deleter.images_directory / "dog.png"
    image.write_bytes(b"img")
    await deleter.delete_image("dog.png")
    assert not image.exists()


@pytest.mark.asyncio
async def test_delete_attachment(deleter):
    attachment = deleter.attachments_directory / "doc.pdf"
    attachment.write_bytes(b"pdf")
    await deleter.delete_attachment("doc.pdf")
    assert not attachment.exists()


@pytest.mark.asyncio
async def test_missing_files_are_tolerated(deleter, caplog):
    await deleter.delete_attachment("ghost.pdf")
    await deleter.delete_files([deleter.images_directory / "nothing", deleter.images_directory])
    assert "ghost.pdf" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize("escape", ["absolute", "parent"])
async def test_paths_outside_upload_directories_are_kept(deleter, tmp_path, caplog, escape):
    outside = tmp_path / "secrets.txt"
    outside.write_text("keep me")
    attachment = str(outside) if escape == "absolute" else "../secrets.txt"

    await deleter.delete_attachment(attachment)
    await deleter.delete_image("../../secrets.txt")
    await deleter.delete_files([outside])

    assert outside.exists()
    assert "Refusing to delete" in caplog.text


@pytest.mark.asyncio
async def test_empty_input(deleter):
    await deleter.delete_files([])
    await deleter.delete_files(None)
