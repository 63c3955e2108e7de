#!/usr/bin/env python
# -*- coding: utf-8 -*-
import pytest

from backend.common.exception import errors
from backend.utils.identifiers import normalize_mac, sanitize_version, try_sanitize_version


@pytest.mark.parametrize(
    'raw, expected',
    [
        ('AA:11:BB:22:CC:33', 'aa11bb22cc33'),
        ('aa-11-bb-22-cc-33', 'aa11bb22cc33'),
        (' aa11bb22cc33 ', 'aa11bb22cc33'),
    ],
)
def test_normalize_mac(raw, expected):
    assert normalize_mac(raw) == expected


@pytest.mark.parametrize('raw', ['', None, '::', 'not-a-mac', 'g1h2', '0' * 33])
def test_normalize_mac_rejects(raw):
    with pytest.raises(errors.RequestError) as exc:
        normalize_mac(raw)
    assert exc.value.msg == 'bad_mac'
    assert exc.value.code == 400


def test_sanitize_version():
    assert sanitize_version('v1.2.3') == 'v1.2.3'
    assert sanitize_version('../1.0.0') == '1.0.0'
    assert sanitize_version('1.0 beta/2') == '1.0beta2'
    assert sanitize_version('1.0.0_rc-1') == '1.0.0_rc-1'


@pytest.mark.parametrize('raw', ['', None, '...', '/', 'x' * 65])
def test_sanitize_version_rejects(raw):
    with pytest.raises(errors.RequestError) as exc:
        sanitize_version(raw)
    assert exc.value.msg == 'bad_version'
    assert try_sanitize_version(raw) is None
