#!/usr/bin/env python
# -*- coding: utf-8 -*-
import json

from datetime import timedelta

from backend.app.fleet.repository.base import merge_device
from backend.app.fleet.repository.file import FileBackend, decode_device
from backend.database.file_store import JsonDocument, TextDirectory, atomic_write
from backend.utils.timezone import timezone


def test_atomic_write_creates_parents(tmp_path):
    target = tmp_path / 'a' / 'b' / 'data.bin'
    atomic_write(target, b'payload')
    assert target.read_bytes() == b'payload'
    assert [p.name for p in target.parent.iterdir()] == ['data.bin']


def test_json_document_missing_and_corrupt(tmp_path):
    doc = JsonDocument(tmp_path / 'doc.json')
    assert doc.read() == {}
    doc.path.write_text('{not json', encoding='utf-8')
    assert doc.read() == {}
    doc.path.write_text('[1, 2]', encoding='utf-8')
    assert doc.read() == {}
    doc.write({'k': timezone.now()})
    assert isinstance(json.loads(doc.path.read_text(encoding='utf-8'))['k'], str)


def test_text_directory(tmp_path):
    notes = TextDirectory(tmp_path / 'notes')
    assert notes.read('aa') is None
    notes.write('aa', 'hello')
    assert notes.read('aa') == 'hello'
    assert notes.delete('aa') is True
    assert notes.delete('aa') is False


def test_merge_device_creates_defaults():
    now = timezone.now()
    merged = merge_device(None, {'mac': 'aa11bb22cc33'}, now=now)
    assert merged['model'] == 'ESP32'
    assert merged['name'] == 'CalcAI-2cc33'
    assert merged['first_seen'] == now
    assert merged['last_seen'] == now
    assert merged['update_available'] is False


def test_merge_device_coalesces():
    first = timezone.now() - timedelta(days=1)
    existing = merge_device(None, {'mac': 'aa11', 'chip_id': 'c1', 'firmware': '1.0.0'}, now=first)
    now = timezone.now()
    merged = merge_device(existing, {'mac': 'aa11', 'firmware': None, 'name': 'desk', 'first_seen': now}, now=now)
    assert merged['chip_id'] == 'c1'
    assert merged['firmware'] == '1.0.0'
    assert merged['name'] == 'desk'
    assert merged['first_seen'] == first
    assert merged['last_seen'] == now


def test_decode_legacy_device():
    record = decode_device('aa11bb22cc33', {
        'mac': 'AA:11:BB:22:CC:33',
        'chipId': 'chip-1',
        'firstSeen': '2025-01-01T00:00:00.000Z',
        'lastSeen': '2025-01-02T00:00:00Z',
        'rssi': -60,
        'updateAvailable': True,
        'targetFirmware': '1.1.0',
        'updatedAt': None,
        'lastSeenBogus': 'x',
    })
    assert record['mac'] == 'aa11bb22cc33'
    assert record['chip_id'] == 'chip-1'
    assert record['signal'] == -60
    assert record['first_seen'].year == 2025
    assert record['last_seen'] > record['first_seen']
    assert record['update_available'] is True
    assert record['target_firmware'] == '1.1.0'
    assert 'last_seen_bogus' not in record


async def test_file_backend_pair_codes(tmp_path):
    backend = FileBackend(tmp_path)
    assert await backend.bind_pair_code_if_absent('aa11', 'ABC123') == 'ABC123'
    # 已有配对码时返回原配对码
    assert await backend.bind_pair_code_if_absent('aa11', 'XYZ789') == 'ABC123'
    # 配对码已被占用
    assert await backend.bind_pair_code_if_absent('bb22', 'ABC123') is None
    assert await backend.find_pair_code('abc123') == 'aa11'
    await backend.replace_pair_code('aa11', 'NEW456')
    assert await backend.find_pair_code('ABC123') is None
    assert await backend.delete_pair_code('aa11') is True
    assert await backend.get_pair_code('aa11') is None


async def test_file_backend_notes_append(tmp_path):
    backend = FileBackend(tmp_path)
    await backend.append_notes('aa11', 'one')
    await backend.append_notes('aa11', 'two')
    assert await backend.get_notes('aa11') == 'one\ntwo'
    await backend.set_notes('aa11', 'reset')
    assert await backend.get_notes('aa11') == 'reset'


async def test_file_backend_ownership(tmp_path):
    backend = FileBackend(tmp_path)
    assert await backend.create_account('alice', 'hash')
    assert not await backend.create_account('alice', 'other')
    assert await backend.claim_owner_if_absent('aa11', 'alice')
    assert not await backend.claim_owner_if_absent('aa11', 'bob')
    assert await backend.list_owned('alice') == ['aa11']
    assert await backend.release_owner('aa11')
    assert await backend.get_owner('aa11') is None
