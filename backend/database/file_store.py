#!/usr/bin/env python
# -*- coding: utf-8 -*-
import asyncio
import json
import os
import tempfile

from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from backend.common.log import log


class RecordEncoder(json.JSONEncoder):
    """JSON encoder for datetime and Enum values."""

    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def atomic_write(path: Path, data: bytes) -> None:
    """
    原子写入文件（临时文件 + rename）

    :param path: 目标文件
    :param data: 文件内容
    :return:
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp, path)
    except OSError:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


class JsonDocument:
    """
    A single keyed JSON document holding one logical table.

    Every write rewrites the whole file; the lock serialises writers inside this
    process only.
    """

    def __init__(self, path: Path):
        self.path = path
        self.lock = asyncio.Lock()

    def read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return {}
        except OSError as e:
            log.error(f'[file_store] 读取 {self.path} 失败: {e!r}')
            return {}
        try:
            data = json.loads(raw or '{}')
        except json.JSONDecodeError as e:
            log.error(f'[file_store] {self.path} 内容损坏: {e}')
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: dict[str, Any]) -> None:
        atomic_write(self.path, json.dumps(data, cls=RecordEncoder, ensure_ascii=False, indent=2).encode('utf-8'))


class TextDirectory:
    """One UTF-8 text file per key."""

    def __init__(self, root: Path, suffix: str = '.txt'):
        self.root = root
        self.suffix = suffix
        self.lock = asyncio.Lock()

    def path_for(self, key: str) -> Path:
        return self.root / f'{key}{self.suffix}'

    def read(self, key: str) -> str | None:
        try:
            return self.path_for(key).read_text(encoding='utf-8')
        except FileNotFoundError:
            return None

    def write(self, key: str, text: str) -> None:
        atomic_write(self.path_for(key), text.encode('utf-8'))

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        return True
