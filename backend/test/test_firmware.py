#!/usr/bin/env python
# -*- coding: utf-8 -*-
import asyncio
import hashlib
import json
import os

from pathlib import Path

import httpx
import pytest

from backend.app.fleet.service.firmware import FirmwareStore
from backend.common.cache import DigestCache
from backend.common.exception import errors

PAYLOAD = b'\xe9firmware-image' * 64


async def test_publish_and_fetch(firmware):
    detail = await firmware.publish(version='1.2.0', data=PAYLOAD, description='fix wifi')
    assert detail.sha256 == hashlib.sha256(PAYLOAD).hexdigest()
    assert detail.size == len(PAYLOAD)

    artifact = await firmware.fetch(version='1.2.0')
    assert artifact.path.read_bytes() == PAYLOAD
    assert artifact.sha256 == detail.sha256
    assert artifact.etag == f'"{detail.sha256}"'


async def test_publish_sanitizes_version(firmware):
    detail = await firmware.publish(version='../1.2.0 beta', data=PAYLOAD)
    assert detail.version == '1.2.0beta'
    assert (firmware.directory / '1.2.0beta.bin').is_file()


async def test_republish_refreshes_digest(firmware):
    await firmware.publish(version='1.0.0', data=b'old')
    await firmware.fetch(version='1.0.0')
    await firmware.publish(version='1.0.0', data=b'new-bytes')
    artifact = await firmware.fetch(version='1.0.0')
    assert artifact.sha256 == hashlib.sha256(b'new-bytes').hexdigest()
    assert [entry.version for entry in await firmware.list()] == ['1.0.0']


async def test_list_newest_first(firmware):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    await firmware.publish(version='1.1.0', data=PAYLOAD)
    assert [entry.version for entry in await firmware.list()] == ['1.1.0', '1.0.0']
    assert (await firmware.latest()).version == '1.1.0'


async def test_fetch_unknown_without_origin(firmware):
    with pytest.raises(errors.NotFoundError):
        await firmware.fetch(version='9.9.9')
    assert await firmware.latest() is None


async def test_manifest_rebuilt_when_corrupt(firmware):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    firmware.manifest.document.path.write_text('{not json', encoding='utf-8')

    [entry] = await firmware.list()
    assert entry.version == '1.0.0'
    assert entry.sha256 == hashlib.sha256(PAYLOAD).hexdigest()
    assert json.loads(firmware.manifest.document.path.read_text())['versions'][0]['version'] == '1.0.0'


async def test_manifest_prunes_missing_bytes(firmware):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    await firmware.publish(version='1.1.0', data=PAYLOAD)
    os.unlink(firmware.directory / '1.1.0.bin')
    assert [entry.version for entry in await firmware.list()] == ['1.0.0']
    assert (await firmware.latest()).version == '1.0.0'


async def test_delete(firmware):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    await firmware.delete(version='1.0.0')
    assert await firmware.list() == []
    assert not (firmware.directory / '1.0.0.bin').exists()
    with pytest.raises(errors.NotFoundError):
        await firmware.delete(version='1.0.0')


async def test_delete_keeps_entry_when_bytes_survive(firmware, monkeypatch):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    unlink = Path.unlink

    def locked_unlink(self, missing_ok=False):
        if self.name == '1.0.0.bin':
            raise PermissionError(13, 'Permission denied')
        return unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, 'unlink', locked_unlink)
    with pytest.raises(errors.ServerError):
        await firmware.delete(version='1.0.0')
    assert [entry.version for entry in await firmware.list()] == ['1.0.0']
    assert (await firmware.fetch(version='1.0.0')).size == len(PAYLOAD)


async def test_clear_all(firmware):
    await firmware.publish(version='1.0.0', data=PAYLOAD)
    await firmware.publish(version='1.1.0', data=PAYLOAD)
    assert await firmware.clear_all() == 2
    assert await firmware.list() == []
    assert await firmware.latest() is None


async def test_origin_fetch_is_cached(tmp_path, make_origin):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=PAYLOAD)

    store = FirmwareStore(tmp_path / 'fw', make_origin(handler, token='origin-secret'), DigestCache())
    first = await store.fetch(version='2.0.0')
    second = await store.fetch(version='2.0.0')
    assert first.sha256 == second.sha256 == hashlib.sha256(PAYLOAD).hexdigest()
    assert len(calls) == 1
    assert calls[0].url.path == '/api/devices/firmware/2.0.0'
    assert calls[0].headers['X-Service-Token'] == 'origin-secret'
    # 源站缓存的固件不进入发布索引
    assert await store.list() == []
    await store.close()


async def test_origin_cache_survives_manifest_rebuild(tmp_path, make_origin):
    store = FirmwareStore(tmp_path / 'fw', make_origin(lambda request: httpx.Response(200, content=PAYLOAD)), DigestCache())
    await store.fetch(version='9.9.9-beta')
    await store.publish(version='1.0.0', data=PAYLOAD)
    store.manifest.document.path.unlink()

    assert [entry.version for entry in await store.list()] == ['1.0.0']
    assert (await store.latest()).version == '1.0.0'
    assert (await store.describe('9.9.9-beta')).size == len(PAYLOAD)

    await store.delete(version='9.9.9-beta')
    assert store.local_path('9.9.9-beta') is None
    await store.close()


@pytest.mark.parametrize(
    ('status', 'expected'),
    [(404, errors.NotFoundError), (500, errors.UpstreamUnavailableError)],
)
async def test_origin_fetch_errors(tmp_path, make_origin, status, expected):
    store = FirmwareStore(tmp_path / 'fw', make_origin(lambda request: httpx.Response(status)), DigestCache())
    with pytest.raises(expected):
        await store.fetch(version='2.0.0')
    assert not (tmp_path / 'fw' / '2.0.0.bin').exists()
    await store.close()


async def test_origin_rejects_empty_and_oversize(tmp_path, make_origin):
    empty = make_origin(lambda request: httpx.Response(200, content=b''))
    with pytest.raises(errors.UpstreamUnavailableError):
        await empty.fetch('2.0.0')

    small = make_origin(lambda request: httpx.Response(200, content=PAYLOAD), max_bytes=16)
    with pytest.raises(errors.UpstreamUnavailableError):
        await small.fetch('2.0.0')


async def test_origin_connect_error(make_origin):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('refused', request=request)

    with pytest.raises(errors.UpstreamUnavailableError):
        await make_origin(handler).fetch('2.0.0')
    assert not await make_origin(handler).probe('2.0.0')


async def test_probe_head(make_origin):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == 'HEAD'
        return httpx.Response(200 if request.url.path.endswith('/2.0.0') else 404)

    origin = make_origin(handler)
    assert await origin.probe('2.0.0')
    assert not await origin.probe('3.0.0')


async def test_probe_falls_back_to_range_get(make_origin):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.headers.get('Range')))
        if request.method == 'HEAD':
            return httpx.Response(405)
        return httpx.Response(206, content=PAYLOAD[:1])

    assert await make_origin(handler).probe('2.0.0')
    assert seen == [('HEAD', None), ('GET', 'bytes=0-0')]


async def test_probe_timeout(make_origin):
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200)

    origin = make_origin(handler, probe_timeout=0.05)
    assert not await origin.probe('2.0.0')


async def test_is_available(tmp_path, make_origin):
    store = FirmwareStore(tmp_path / 'fw', make_origin(lambda request: httpx.Response(404)), DigestCache())
    assert not await store.is_available('2.0.0')
    await store.publish(version='2.0.0', data=PAYLOAD)
    assert await store.is_available('2.0.0')
    await store.close()
