# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : firmware.py
@Date    : 2025/12/08 10:20
"""
import asyncio
import hashlib

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import httpx

from backend.app.fleet.repository.manifest import ARTIFACT_SUFFIX, FirmwareManifest, ManifestEntry
from backend.app.fleet.schema.firmware import GetFirmwareDetail
from backend.common.cache import DigestCache
from backend.common.exception import errors
from backend.common.http_client import HTTPClient
from backend.common.log import log
from backend.core.conf import settings
from backend.database.file_store import atomic_write
from backend.utils.identifiers import sanitize_version
from backend.utils.timezone import timezone

CHUNK_SIZE = 1024 * 1024
ORIGIN_CACHE_DIR = 'origin'


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open('rb') as f:
        while chunk := f.read(CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class FirmwareArtifact:
    version: str
    path: Path
    size: int
    sha256: str

    @property
    def etag(self) -> str:
        return f'"{self.sha256}"'


class FirmwareOrigin:
    """
    远端固件源站

    下载与探测都有独立的超时；超时一律视为不可用
    """

    def __init__(
            self,
            base_url: Optional[str],
            *,
            token: Optional[str] = None,
            path_template: str = settings.FIRMWARE_ORIGIN_PATH,
            fetch_timeout: float = settings.FIRMWARE_FETCH_TIMEOUT,
            probe_timeout: float = settings.FIRMWARE_PROBE_TIMEOUT,
            max_bytes: int = settings.FIRMWARE_MAX_BYTES,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or '').rstrip('/')
        self.path_template = path_template
        self.fetch_timeout = fetch_timeout
        self.probe_timeout = probe_timeout
        self.max_bytes = max_bytes
        headers = {settings.SERVICE_TOKEN_HEADER: token} if token else None
        self._client = HTTPClient(
            self.base_url,
            timeout=fetch_timeout,
            read=fetch_timeout,
            write=fetch_timeout,
            headers=headers,
            transport=transport,
        ) if self.base_url else None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def url_for(self, version: str) -> str:
        return self.path_template.format(version=quote(version, safe=''))

    async def fetch(self, version: str) -> bytes:
        """
        下载固件

        :param version: 已清理的版本号
        :return:
        """
        if self._client is None:
            raise errors.NotFoundError()
        try:
            async with asyncio.timeout(self.fetch_timeout):
                response = await self._client.get(self.url_for(version))
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise errors.NotFoundError()
            raise errors.UpstreamUnavailableError(data={'status': e.response.status_code})
        except (httpx.HTTPError, TimeoutError) as e:
            log.warning(f'[firmware] 源站下载 {version} 失败: {e!r}')
            raise errors.UpstreamUnavailableError()
        data = response.content
        if not data or len(data) > self.max_bytes:
            log.warning(f'[firmware] 源站返回的 {version} 大小异常: {len(data)}')
            raise errors.UpstreamUnavailableError()
        return data

    async def probe(self, version: str) -> bool:
        """
        轻量探测固件是否存在（HEAD，不支持时退化为 Range GET）

        :param version: 已清理的版本号
        :return:
        """
        if self._client is None:
            return False
        url = self.url_for(version)
        try:
            async with asyncio.timeout(self.probe_timeout):
                try:
                    await self._client.head(url, timeout=self.probe_timeout)
                except httpx.HTTPStatusError as e:
                    if e.response.status_code not in (405, 501):
                        return False
                    await self._client.get(url, headers={'Range': 'bytes=0-0'}, timeout=self.probe_timeout)
        except httpx.HTTPStatusError:
            return False
        except (httpx.HTTPError, TimeoutError) as e:
            log.warning(f'[firmware] 源站探测 {version} 失败: {e!r}')
            return False
        return True

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


class FirmwareStore:
    """固件存储"""

    def __init__(self, directory: Path, origin: FirmwareOrigin, digests: DigestCache):
        self.directory = Path(directory)
        self.origin = origin
        self.digests = digests
        self.manifest = FirmwareManifest(self.directory)
        # 源站缓存单独存放，不参与索引重建
        self.cache_dir = self.directory / ORIGIN_CACHE_DIR

    def cache_path(self, version: str) -> Path:
        return self.cache_dir / f'{version}{ARTIFACT_SUFFIX}'

    def local_path(self, version: str) -> Optional[Path]:
        for path in (self.manifest.artifact_path(version), self.cache_path(version)):
            if path.is_file():
                return path
        return None

    async def digest(self, path: Path, version: str) -> str:
        """ 计算并缓存固件摘要，缓存键包含大小与修改时间 """
        stat = path.stat()
        key = (version, stat.st_size, stat.st_mtime_ns)
        if cached := self.digests.get(key):
            return cached
        value = await asyncio.to_thread(sha256_file, path)
        self.digests.put(key, value)
        return value

    async def _artifact(self, version: str, path: Path) -> FirmwareArtifact:
        return FirmwareArtifact(version=version, path=path, size=path.stat().st_size, sha256=await self.digest(path, version))

    async def _detail(self, entry: ManifestEntry) -> GetFirmwareDetail:
        detail = GetFirmwareDetail.model_validate(entry)
        if detail.sha256 is None and (path := self.local_path(detail.version)):
            detail.sha256 = await self.digest(path, detail.version)
        return detail

    async def publish(self, *, version: str, data: bytes, description: Optional[str] = None) -> GetFirmwareDetail:
        """
        发布固件，同版本重复上传会覆盖文件并重新计算摘要

        :param version: 版本号
        :param data: 固件内容
        :param description: 版本说明
        :return:
        """
        version = sanitize_version(version)
        if len(data) > settings.FIRMWARE_MAX_BYTES:
            raise errors.RequestError(msg='firmware_too_large')
        path = self.manifest.artifact_path(version)
        await asyncio.to_thread(atomic_write, path, data)
        self.cache_path(version).unlink(missing_ok=True)
        self.digests.discard_version(version)
        sha256 = hashlib.sha256(data).hexdigest()
        stat = path.stat()
        self.digests.put((version, stat.st_size, stat.st_mtime_ns), sha256)
        entry = {
            'version': version,
            'size': len(data),
            'sha256': sha256,
            'description': description,
            'created_time': timezone.now(),
        }
        await self.manifest.put(entry)
        log.info(f'[firmware] 发布 {version} ({len(data)} bytes, sha256={sha256})')
        return GetFirmwareDetail.model_validate(entry)

    async def fetch(self, *, version: str) -> FirmwareArtifact:
        """
        获取固件：优先本地缓存，否则从源站下载并缓存

        :param version: 版本号
        :return:
        """
        version = sanitize_version(version)
        if path := self.local_path(version):
            return await self._artifact(version, path)
        if not self.origin.enabled:
            raise errors.NotFoundError()
        data = await self.origin.fetch(version)
        path = self.cache_path(version)
        await asyncio.to_thread(atomic_write, path, data)
        log.info(f'[firmware] 已从源站缓存 {version} ({len(data)} bytes)')
        return await self._artifact(version, path)

    async def describe(self, version: str) -> Optional[FirmwareArtifact]:
        """ 本地已有的固件，没有返回 None """
        if path := self.local_path(version):
            return await self._artifact(version, path)
        return None

    async def is_available(self, version: str) -> bool:
        """ 本地已缓存，或源站探测成功 """
        return self.local_path(version) is not None or await self.origin.probe(version)

    async def list(self) -> List[GetFirmwareDetail]:
        return [await self._detail(entry) for entry in self.manifest.entries()]

    async def latest(self) -> Optional[GetFirmwareDetail]:
        entry = self.manifest.latest()
        return await self._detail(entry) if entry else None

    async def delete(self, *, version: str) -> None:
        """
        删除固件文件与索引条目

        文件删除失败时保留索引条目并抛出 ServerError
        """
        version = sanitize_version(version)
        removed = False
        for path in (self.manifest.artifact_path(version), self.cache_path(version)):
            try:
                path.unlink()
                removed = True
            except FileNotFoundError:
                pass
            except OSError as e:
                log.error(f'[firmware] 删除 {version} 文件失败，固件仍可下载: {e!r}')
                raise errors.ServerError(msg='firmware_delete_failed')
        try:
            removed = await self.manifest.remove(version) or removed
        except OSError as e:
            log.error(f'[firmware] 更新索引失败: {e!r}')
        self.digests.discard_version(version)
        if not removed:
            raise errors.NotFoundError()
        log.info(f'[firmware] 已删除 {version}')

    async def clear_all(self) -> int:
        """ 清空全部固件，返回删除的文件数 """
        count = 0
        if self.directory.is_dir():
            for path in [*self.directory.glob(f'*{ARTIFACT_SUFFIX}'), *self.cache_dir.glob(f'*{ARTIFACT_SUFFIX}')]:
                try:
                    path.unlink()
                    count += 1
                except OSError as e:
                    log.error(f'[firmware] 删除 {path.name} 失败: {e!r}')
        try:
            await self.manifest.clear()
        except OSError as e:
            log.error(f'[firmware] 清空索引失败: {e!r}')
        self.digests.clear()
        log.info(f'[firmware] 已清空 {count} 个固件')
        return count

    async def close(self) -> None:
        await self.origin.close()


firmware_store: FirmwareStore = FirmwareStore(
    Path(settings.STORE_DIR) / 'firmware',
    FirmwareOrigin(settings.FIRMWARE_ORIGIN_URL, token=settings.FIRMWARE_ORIGIN_TOKEN),
    DigestCache(maxsize=settings.DIGEST_CACHE_SIZE),
)
