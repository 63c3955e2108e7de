# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : password.py
@Date    : 2025/12/04 16:20
"""
import base64
import hmac
import os
import secrets

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from backend.core.conf import settings

SCHEME = 'pbkdf2'
SALT_BYTES = 16
KEY_LENGTH = 32


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=iterations)
    return kdf.derive(password.encode('utf-8'))


def hash_password(password: str, *, iterations: int = settings.PASSWORD_HASH_ITERATIONS) -> str:
    """
    生成密码哈希

    格式：pbkdf2$<iterations>$<salt_b64>$<hash_b64>

    :param password: 明文密码
    :param iterations: 迭代次数
    :return:
    """
    salt = os.urandom(SALT_BYTES)
    digest = _derive(password, salt, iterations)
    return '$'.join((
        SCHEME,
        str(iterations),
        base64.b64encode(salt).decode('ascii'),
        base64.b64encode(digest).decode('ascii'),
    ))


def verify_password(password: str, stored: str | None) -> bool:
    """
    常量时间校验密码

    :param password: 明文密码
    :param stored: 存储的密码哈希
    :return:
    """
    try:
        scheme, iterations, salt_b64, hash_b64 = (stored or '').split('$')
        if scheme != SCHEME:
            return False
        expected = base64.b64decode(hash_b64)
        actual = _derive(password, base64.b64decode(salt_b64), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)


def temporary_password(length: int = 10) -> str:
    """ 生成临时密码 """
    alphabet = settings.PAIR_CODE_ALPHABET + settings.PAIR_CODE_ALPHABET.lower()
    return ''.join(secrets.choice(alphabet) for _ in range(length))
