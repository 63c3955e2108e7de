# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : manifest.py
@Date    : 2025/12/03 14:12
"""
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from backend.common.log import log
from backend.database.file_store import JsonDocument
from backend.utils.timezone import timezone

ARTIFACT_SUFFIX = '.bin'

ManifestEntry = Dict[str, Any]


def _created(entry: ManifestEntry) -> float:
    created = entry.get('created_time')
    return created.timestamp() if isinstance(created, datetime) else float('-inf')


class FirmwareManifest:
    """
    固件版本索引（最新在前）

    索引文件丢失或损坏时根据固件目录重建；字节文件已不存在的条目在读取时剔除
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.document = JsonDocument(self.directory / 'manifest.json')

    @property
    def lock(self):
        return self.document.lock

    def artifact_path(self, version: str) -> Path:
        return self.directory / f'{version}{ARTIFACT_SUFFIX}'

    def rebuild(self) -> List[ManifestEntry]:
        """
        根据固件目录重建索引

        :return:
        """
        entries = []
        if self.directory.is_dir():
            for path in self.directory.glob(f'*{ARTIFACT_SUFFIX}'):
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue
                entries.append({
                    'version': path.stem,
                    'size': stat.st_size,
                    'sha256': None,
                    'description': None,
                    'created_time': timezone.from_datetime(datetime.fromtimestamp(stat.st_mtime, timezone.tz_info)),
                })
        entries.sort(key=_created, reverse=True)
        return entries

    def _decode(self, raw: Any) -> Optional[List[ManifestEntry]]:
        if not isinstance(raw, list):
            return None
        entries = []
        for item in raw:
            if not isinstance(item, dict) or not item.get('version'):
                continue
            entry = dict(item)
            try:
                entry['created_time'] = timezone.from_iso(entry.get('created_time'))
            except (TypeError, ValueError):
                entry['created_time'] = None
            entries.append(entry)
        return entries

    def _load(self) -> List[ManifestEntry]:
        entries = self._decode(self.document.read().get('versions'))
        if entries is None:
            entries = self.rebuild()
            if entries:
                log.warning(f'[firmware] 索引缺失或损坏，已根据目录重建 {len(entries)} 个版本')
                self._save(entries)
            return entries
        alive = [entry for entry in entries if self.artifact_path(entry['version']).is_file()]
        if len(alive) != len(entries):
            log.warning(f'[firmware] 剔除 {len(entries) - len(alive)} 个缺少固件文件的索引条目')
            self._save(alive)
        return alive

    def _save(self, entries: List[ManifestEntry]) -> None:
        self.document.write({'versions': entries})

    def entries(self) -> List[ManifestEntry]:
        return self._load()

    def get(self, version: str) -> Optional[ManifestEntry]:
        return next((entry for entry in self._load() if entry['version'] == version), None)

    def latest(self) -> Optional[ManifestEntry]:
        entries = self._load()
        return max(entries, key=_created) if entries else None

    async def put(self, entry: ManifestEntry) -> None:
        """ 插入或覆盖同版本条目，并移到最前 """
        async with self.lock:
            entries = [item for item in self._load() if item['version'] != entry['version']]
            entries.insert(0, entry)
            self._save(entries)

    async def remove(self, version: str) -> bool:
        async with self.lock:
            entries = self._load()
            kept = [item for item in entries if item['version'] != version]
            if len(kept) == len(entries):
                return False
            self._save(kept)
        return True

    async def clear(self) -> None:
        async with self.lock:
            self._save([])
