# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : note.py
@Date    : 2025/12/07 14:05
"""
from typing import Optional

from backend.app.fleet.repository.gateway import PersistenceGateway, persistence_gateway
from backend.app.fleet.schema.note import NoteWriteMode, SaveNoteParam
from backend.app.fleet.service.pair import PairingService, pairing_service
from backend.common.exception import errors
from backend.common.security.jwt import jwt_decode
from backend.common.security.service_token import token_matches
from backend.core.conf import settings
from backend.utils.identifiers import normalize_mac


class NotesService:
    """设备笔记服务"""

    def __init__(self, gateway: PersistenceGateway, pairing: PairingService):
        self.gateway = gateway
        self.pairing = pairing

    async def authorize(
            self,
            *,
            mac: str,
            pair_code: Optional[str] = None,
            web_token: Optional[str] = None,
            bearer: Optional[str] = None,
            service_token: Optional[str] = None,
    ) -> str:
        """
        校验笔记访问权限，依次尝试：配对码、浏览器会话、账户 token、设备/服务凭证

        :return: 规范化后的设备 MAC
        """
        mac = normalize_mac(mac)

        if pair_code:
            bound = await self.gateway.find_pair_code(pair_code.strip().upper())
            if bound != mac:
                raise errors.AuthorizationError()
            return mac

        if web_token:
            if self.pairing.web_token_device(web_token) != mac:
                raise errors.AuthorizationError()
            return mac

        if bearer:
            try:
                payload = jwt_decode(bearer)
            except errors.TokenError:
                payload = None
            if payload is not None:
                if mac in payload.macs or await self.gateway.get_owner(mac) == payload.username:
                    return mac

        if service_token:
            # 未配置任何凭证时，携带任意凭证即可访问
            if token_matches(service_token, settings.notes_tokens):
                return mac

        raise errors.UnauthorizedError(msg='missing_token')

    async def get(self, *, mac: str) -> str:
        """ 读取笔记，不存在时返回空字符串 """
        return await self.gateway.get_notes(mac) or ''

    async def save(self, *, mac: str, obj: SaveNoteParam) -> int:
        """
        写入笔记，存储内容只保留最后 NOTES_MAX_CHARS 个字符

        :return: 保存后的长度
        """
        cap = settings.NOTES_MAX_CHARS
        text = obj.text
        if obj.mode == NoteWriteMode.set:
            await self.gateway.set_notes(mac, text[-cap:] if len(text) > cap else text)
        else:
            await self.gateway.append_notes(mac, text)
        final = await self.gateway.get_notes(mac) or ''
        if len(final) > cap:
            final = final[-cap:]
            await self.gateway.set_notes(mac, final)
        return len(final)

    async def delete(self, *, mac: str) -> bool:
        return await self.gateway.delete_notes(mac)


notes_service: NotesService = NotesService(persistence_gateway, pairing_service)
