# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : pair.py
@Date    : 2025/12/06 15:40
"""
import secrets

from backend.app.fleet.repository.gateway import PersistenceGateway, persistence_gateway
from backend.app.fleet.schema.pair import GetPairClaimDetail, GetPairResetDetail, GetPairResolveDetail
from backend.common.cache import SessionTokenCache
from backend.common.exception import errors
from backend.common.log import log
from backend.core.conf import settings
from backend.utils.identifiers import normalize_mac

# 生成配对码时允许的碰撞重试次数
MAX_ISSUE_ATTEMPTS = 16


def generate_code(length: int = settings.PAIR_CODE_LENGTH, alphabet: str = settings.PAIR_CODE_ALPHABET) -> str:
    """ 生成配对码，字母表已排除 0/O、1/I/L 等易混淆字符 """
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def normalize_code(code: str | None) -> str:
    return (code or '').strip().upper()


class PairingService:
    """配对服务"""

    def __init__(self, gateway: PersistenceGateway, web_tokens: SessionTokenCache):
        self.gateway = gateway
        self.web_tokens = web_tokens

    async def issue(self, *, mac: str) -> str:
        """
        获取设备配对码，没有则生成并绑定

        重复调用返回同一个配对码

        :param mac: 设备 MAC
        :return:
        """
        mac = normalize_mac(mac)
        if code := await self.gateway.get_pair_code(mac):
            return code
        for _ in range(MAX_ISSUE_ATTEMPTS):
            bound = await self.gateway.bind_pair_code_if_absent(mac, generate_code())
            if bound:
                log.info(f'[pair] 设备 {mac} 已绑定配对码')
                return bound
        raise errors.ServerError(msg='pair_code_exhausted')

    async def resolve(self, *, code: str) -> str:
        """ 配对码 -> 设备 MAC，不区分大小写 """
        code = normalize_code(code)
        mac = await self.gateway.find_pair_code(code) if code else None
        if mac is None:
            raise errors.NotFoundError()
        return mac

    async def resolve_detail(self, *, code: str) -> GetPairResolveDetail:
        mac = await self.resolve(code=code)
        owner = await self.gateway.get_owner(mac)
        return GetPairResolveDetail(mac=mac, claimed=owner is not None, owner=owner)

    async def rotate(self, *, mac: str) -> GetPairResetDetail:
        """
        重置配对：更换配对码，使旧配对码和浏览器会话失效，并清空设备笔记

        :param mac: 设备 MAC
        :return:
        """
        mac = normalize_mac(mac)
        previous = await self.gateway.get_pair_code(mac)
        for _ in range(MAX_ISSUE_ATTEMPTS):
            code = generate_code()
            if code != previous and await self.gateway.find_pair_code(code) is None:
                break
        else:
            raise errors.ServerError(msg='pair_code_exhausted')
        await self.gateway.replace_pair_code(mac, code)
        revoked = self.web_tokens.revoke_device(mac)
        await self.gateway.delete_notes(mac)
        log.info(f'[pair] 设备 {mac} 已重置配对，失效会话 {revoked} 个')
        return GetPairResetDetail(mac=mac, code=code, revoked_tokens=revoked)

    async def claim(self, *, code: str, username: str) -> str:
        """
        账户认领设备

        :param code: 配对码
        :param username: 账户
        :return: 设备 MAC
        """
        mac = await self.resolve(code=code)
        if not await self.gateway.claim_owner_if_absent(mac, username):
            raise errors.AlreadyClaimedError(data={'mac': mac})
        log.info(f'[pair] 设备 {mac} 已被账户 {username} 认领')
        return mac

    async def issue_web_token(self, *, code: str) -> GetPairClaimDetail:
        """ 浏览器凭配对码换取短期会话 token """
        code = normalize_code(code)
        if len(code) < 4:
            raise errors.RequestError(msg='invalid_code')
        try:
            mac = await self.resolve(code=code)
        except errors.NotFoundError:
            raise errors.NotFoundError(msg='invalid_code')
        return GetPairClaimDetail(mac=mac, web_token=self.web_tokens.issue(mac))

    def web_token_device(self, token: str | None) -> str | None:
        return self.web_tokens.resolve(token or '')


pairing_service: PairingService = PairingService(
    persistence_gateway,
    SessionTokenCache(ttl=settings.WEB_TOKEN_EXPIRE_SECONDS, maxsize=settings.WEB_TOKEN_MAX_SIZE),
)
