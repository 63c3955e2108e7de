# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : account.py
@Date    : 2025/12/07 09:30
"""
import asyncio

from backend.app.fleet.repository.gateway import PersistenceGateway, persistence_gateway
from backend.app.fleet.schema.account import (
    GetAccountDetail,
    GetOwnerDetail,
    GetPasswordResetDetail,
    GetTokenDetail,
    LoginParam,
    RegisterParam,
)
from backend.app.fleet.service.pair import PairingService, pairing_service
from backend.common.exception import errors
from backend.common.log import log
from backend.common.security.jwt import TokenPayload, create_access_token
from backend.common.security.password import hash_password, temporary_password, verify_password
from backend.utils.identifiers import normalize_mac


class AccountService:
    """账户与设备归属服务"""

    def __init__(self, gateway: PersistenceGateway, pairing: PairingService):
        self.gateway = gateway
        self.pairing = pairing

    async def _authenticate(self, username: str, password: str) -> None:
        account = await self.gateway.get_account(username)
        if account is None or not await asyncio.to_thread(verify_password, password, account['password_hash']):
            raise errors.AuthorizationError(msg='bad_credentials')

    async def _token_detail(self, username: str, mac: str | None = None) -> GetTokenDetail:
        macs = await self.gateway.list_owned(username)
        return GetTokenDetail(username=username, macs=macs, token=create_access_token(username, macs), mac=mac)

    async def register(self, *, obj: RegisterParam) -> GetTokenDetail:
        """
        凭配对码注册（或登录已有账户）并认领设备

        :param obj: 注册参数
        :return:
        """
        username = obj.username.strip()
        if not username:
            raise errors.RequestError(msg='missing_fields')
        try:
            mac = await self.pairing.resolve(code=obj.code)
        except errors.NotFoundError:
            raise errors.NotFoundError(msg='invalid_code')
        if await self.gateway.get_owner(mac) is not None:
            raise errors.AlreadyClaimedError(data={'mac': mac})

        if await self.gateway.get_account(username) is not None:
            await self._authenticate(username, obj.password)
        elif not await self.gateway.create_account(username, await asyncio.to_thread(hash_password, obj.password)):
            raise errors.ConflictError(msg='username_taken')
        else:
            log.info(f'[account] 新账户 {username}')

        await self.pairing.claim(code=obj.code, username=username)
        return await self._token_detail(username, mac)

    async def login(self, *, obj: LoginParam) -> GetTokenDetail:
        username = obj.username.strip()
        await self._authenticate(username, obj.password)
        return await self._token_detail(username)

    @staticmethod
    def whoami(payload: TokenPayload) -> GetAccountDetail:
        return GetAccountDetail(username=payload.username, macs=payload.macs)

    async def get_owner(self, *, mac: str) -> GetOwnerDetail:
        mac = normalize_mac(mac)
        return GetOwnerDetail(mac=mac, username=await self.gateway.get_owner(mac))

    async def release(self, *, mac: str) -> GetOwnerDetail:
        """ 解除设备归属（认领 -> 未认领的唯一途径） """
        mac = normalize_mac(mac)
        owner = await self.gateway.get_owner(mac)
        if owner is None or not await self.gateway.release_owner(mac):
            raise errors.NotFoundError(msg='unclaimed')
        log.info(f'[account] 设备 {mac} 已解除与 {owner} 的归属')
        return GetOwnerDetail(mac=mac, username=None)

    async def reset_password(self, *, mac: str) -> GetPasswordResetDetail:
        """ 为设备所属账户生成临时密码 """
        mac = normalize_mac(mac)
        username = await self.gateway.get_owner(mac)
        if username is None:
            raise errors.NotFoundError(msg='unclaimed')
        temp = temporary_password()
        if not await self.gateway.set_password(username, await asyncio.to_thread(hash_password, temp)):
            raise errors.ServerError(msg='reset_failed')
        log.info(f'[account] 已为 {username} 重置密码')
        return GetPasswordResetDetail(mac=mac, username=username, temp_password=temp)


account_service: AccountService = AccountService(persistence_gateway, pairing_service)
