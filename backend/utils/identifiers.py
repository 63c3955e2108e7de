#!/usr/bin/env python
# -*- coding: utf-8 -*-
import re

from backend.common.exception import errors

_NON_ALNUM = re.compile(r'[^0-9A-Za-z]')
_HEX = re.compile(r'^[0-9a-f]{1,32}$')
_UNSAFE_VERSION = re.compile(r'[^0-9A-Za-z._-]')

VERSION_MAX_LENGTH = 64


def normalize_mac(value: str | None) -> str:
    """
    规范化设备 MAC：去除分隔符并转小写

    :param value: 原始 MAC，如 AA:11:BB:22:CC:33
    :return:
    """
    mac = _NON_ALNUM.sub('', value or '').lower()
    if not _HEX.match(mac):
        raise errors.RequestError(msg='bad_mac')
    return mac


def sanitize_version(value: str | None) -> str:
    """
    清理固件版本号，只保留 [0-9A-Za-z._-]，去掉开头的点

    :param value: 原始版本号
    :return:
    """
    version = _UNSAFE_VERSION.sub('', value or '').lstrip('.')
    if not version or len(version) > VERSION_MAX_LENGTH:
        raise errors.RequestError(msg='bad_version')
    return version


def try_sanitize_version(value: str | None) -> str | None:
    """ 版本号无效时返回 None """
    try:
        return sanitize_version(value)
    except errors.RequestError:
        return None
