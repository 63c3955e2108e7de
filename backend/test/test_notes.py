#!/usr/bin/env python
# -*- coding: utf-8 -*-
import pytest

from backend.app.fleet.schema.note import SaveNoteParam
from backend.app.fleet.service.note import NotesService
from backend.common.exception import errors
from backend.common.security.jwt import create_access_token
from backend.core.conf import settings


@pytest.fixture
def notes(gateway, pairing) -> NotesService:
    return NotesService(gateway, pairing)


async def test_save_modes(notes):
    assert await notes.get(mac='aa11') == ''
    assert await notes.save(mac='aa11', obj=SaveNoteParam(text='one')) == 3
    assert await notes.save(mac='aa11', obj=SaveNoteParam(text='two')) == 7
    assert await notes.get(mac='aa11') == 'one\ntwo'
    assert await notes.save(mac='aa11', obj=SaveNoteParam(text='fresh', mode='set')) == 5
    assert await notes.get(mac='aa11') == 'fresh'
    assert await notes.delete(mac='aa11')
    assert await notes.get(mac='aa11') == ''


async def test_save_keeps_tail(notes, monkeypatch):
    monkeypatch.setattr(settings, 'NOTES_MAX_CHARS', 8)
    await notes.save(mac='aa11', obj=SaveNoteParam(text='abcdef', mode='set'))
    assert await notes.save(mac='aa11', obj=SaveNoteParam(text='ghij')) == 8
    assert await notes.get(mac='aa11') == 'def\nghij'
    assert await notes.save(mac='aa11', obj=SaveNoteParam(text='0123456789', mode='set')) == 8
    assert await notes.get(mac='aa11') == '23456789'


async def test_authorize_with_pair_code(notes, pairing):
    code = await pairing.issue(mac='aa11')
    await pairing.issue(mac='aa12')
    assert await notes.authorize(mac='AA:11', pair_code=code.lower()) == 'aa11'
    with pytest.raises(errors.AuthorizationError):
        await notes.authorize(mac='aa12', pair_code=code)


async def test_authorize_with_web_token(notes, pairing):
    token = pairing.web_tokens.issue('aa11')
    assert await notes.authorize(mac='aa11', web_token=token) == 'aa11'
    with pytest.raises(errors.AuthorizationError):
        await notes.authorize(mac='aa12', web_token=token)


async def test_authorize_with_account_token(notes, gateway):
    token = create_access_token('alice', ['aa11'])
    assert await notes.authorize(mac='aa11', bearer=token) == 'aa11'

    await gateway.create_account('bob', 'hash')
    await gateway.claim_owner_if_absent('aa12', 'bob')
    assert await notes.authorize(mac='aa12', bearer=create_access_token('bob', [])) == 'aa12'

    with pytest.raises(errors.UnauthorizedError):
        await notes.authorize(mac='aa12', bearer=token)
    with pytest.raises(errors.UnauthorizedError):
        await notes.authorize(mac='aa11', bearer='garbage')


async def test_authorize_with_service_token(notes, monkeypatch):
    with pytest.raises(errors.UnauthorizedError):
        await notes.authorize(mac='aa11')
    assert await notes.authorize(mac='aa11', service_token='anything') == 'aa11'

    monkeypatch.setattr(settings, 'DEVICES_SERVICE_TOKEN', 'device-secret')
    assert await notes.authorize(mac='aa11', service_token='device-secret') == 'aa11'
    with pytest.raises(errors.UnauthorizedError):
        await notes.authorize(mac='aa11', service_token='wrong')
