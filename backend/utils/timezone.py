#!/usr/bin/env python
# -*- coding: utf-8 -*-
import zoneinfo

from datetime import datetime
from datetime import timezone as datetime_timezone

from backend.core.conf import settings


class TimeZone:
    def __init__(self, tz: str = settings.DATETIME_TIMEZONE) -> None:
        """
        初始化时区转换器

        :param tz: 时区名称，默认为 settings.DATETIME_TIMEZONE
        :return:
        """
        self.tz_info = zoneinfo.ZoneInfo(tz)

    def now(self) -> datetime:
        """获取当前时区时间"""
        return datetime.now(self.tz_info)

    def from_datetime(self, t: datetime) -> datetime:
        """
        将 datetime 对象转换为当前时区时间，无时区信息的时间视为 UTC

        :param t: 需要转换的 datetime 对象
        :return:
        """
        if t.tzinfo is None:
            t = t.replace(tzinfo=datetime_timezone.utc)
        return t.astimezone(self.tz_info)

    def from_str(self, t_str: str, format_str: str = settings.DATETIME_FORMAT) -> datetime:
        """
        将时间字符串转换为当前时区的 datetime 对象

        :param t_str: 时间字符串
        :param format_str: 时间格式字符串，默认为 settings.DATETIME_FORMAT
        :return:
        """
        return datetime.strptime(t_str, format_str).replace(tzinfo=self.tz_info)

    def from_iso(self, value: str | datetime | int | float | None) -> datetime | None:
        """
        解析 ISO 8601 字符串或毫秒时间戳

        :param value: ISO 字符串、datetime 或毫秒时间戳
        :return:
        """
        if value is None or value == '':
            return None
        if isinstance(value, datetime):
            return self.from_datetime(value)
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, self.tz_info)
        return self.from_datetime(datetime.fromisoformat(value.replace('Z', '+00:00')))

    @staticmethod
    def to_str(t: datetime, format_str: str = settings.DATETIME_FORMAT) -> str:
        """
        将 datetime 对象转换为指定格式的时间字符串

        :param t: datetime 对象
        :param format_str: 时间格式字符串，默认为 settings.DATETIME_FORMAT
        :return:
        """
        return t.strftime(format_str)

    @staticmethod
    def to_utc(t: datetime | int) -> datetime:
        """
        将 datetime 对象或者时间戳转换为 UTC 时区时间

        :param t: 需要转换的 datetime 对象或时间戳
        :return:
        """
        if isinstance(t, datetime):
            return t.astimezone(datetime_timezone.utc)
        return datetime.fromtimestamp(t, tz=datetime_timezone.utc)


timezone: TimeZone = TimeZone()
