import asyncio
import httpx
import logging
import os
from pathlib import Path
from typing import Optional

from print_kiosk.domain.exceptions import StorageError
from print_kiosk.application.interfaces import ObjectStore

logger = logging.getLogger(__name__)


class CloudinaryObjectStore(ObjectStore):
    """Удаление файлов через Cloudinary Admin API. asset_ref — public_id."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, resource_type: str = "image",
                 max_retries: int = 3, retry_delay: float = 1.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = f"https://api.cloudinary.com/v1_1/{cloud_name}/resources/{resource_type}/upload"
        self._api_key = api_key
        self._api_secret = api_secret
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._transport = transport

    async def delete(self, asset_ref: str) -> None:
        for attempt in range(self._max_retries):
            try:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    response = await client.delete(
                        self._url,
                        params={"public_ids[]": asset_ref},
                        auth=(self._api_key, self._api_secret),
                        timeout=10.0
                    )

                if response.status_code == 200:
                    # {"deleted": {"<id>": "deleted" | "not_found"}}: оба варианта успех
                    result = response.json().get("deleted", {}).get(asset_ref)
                    logger.info(f"Cloudinary: {asset_ref} -> {result}")
                    return
                if response.status_code == 404:
                    return
                if response.status_code < 500 and response.status_code != 429:
                    raise StorageError(f"Cloudinary ошибка: {response.status_code}")
                logger.warning(f"Cloudinary вернул {response.status_code} (попытка {attempt + 1}/{self._max_retries})")

            except httpx.RequestError as e:
                logger.warning(f"Ошибка подключения к Cloudinary (попытка {attempt + 1}/{self._max_retries}): {e}")

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._retry_delay)

        raise StorageError(f"Не удалось удалить {asset_ref} из Cloudinary")


class LocalFileObjectStore(ObjectStore):
    """Файлы в локальной папке загрузок. asset_ref — путь относительно base_dir."""

    def __init__(self, base_dir: str):
        self._base_dir = Path(base_dir).resolve()

    def _path(self, asset_ref: str) -> Path:
        path = (self._base_dir / asset_ref).resolve()
        # Защита от выхода за пределы папки загрузок
        if self._base_dir not in path.parents:
            raise StorageError(f"Недопустимый путь файла: {asset_ref}")
        return path

    async def delete(self, asset_ref: str) -> None:
        path = self._path(asset_ref)
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Не удалось удалить {asset_ref}: {e}") from e
        logger.info(f"Удален локальный файл {asset_ref}")
        await asyncio.to_thread(self._remove_empty_dir, path.parent)

    def _remove_empty_dir(self, directory: Path) -> None:
        if directory == self._base_dir:
            return
        try:
            if not any(directory.iterdir()):
                directory.rmdir()
        except OSError as e:
            logger.debug(f"Папка {directory} не удалена: {e}")
