import logging
import os
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FilesDeleter:
    """Best-effort removal of uploaded images and attachments.

    Failures (missing files included) are logged and never raised, so a
    record deletion is not failed by a stale or locked file. Paths that
    resolve outside the images or attachments directories are refused.
    """

    def __init__(self, images_directory: PathLike, attachments_directory: PathLike) -> None:
        self.images_directory = Path(images_directory)
        self.attachments_directory = Path(attachments_directory)

    async def delete_image(self, image: str) -> None:
        """Remove an image together with its thumbnail copy."""
        await self.delete_files([
            self.images_directory / image,
            self.images_directory / "thumbnails" / image,
        ])

    async def delete_attachment(self, attachment: str) -> None:
        await self.delete_files([self.attachments_directory / attachment])

    def is_managed(self, file_path: PathLike) -> bool:
        resolved = Path(file_path).resolve()
        return any(
            resolved.is_relative_to(root.resolve())
            for root in (self.images_directory, self.attachments_directory)
        )

    async def delete_files(self, files: Iterable[PathLike]) -> None:
        for file_path in files or []:
            if not self.is_managed(file_path):
                logger.warning("Refusing to delete file outside upload directories: %s", file_path)
                continue
            try:
                os.remove(file_path)
                logger.info("Deleted file: %s", file_path)
            except FileNotFoundError:
                logger.warning("File already gone: %s", file_path)
            except OSError as e:
                logger.warning("Failed to delete file %s: %s", file_path, str(e))
