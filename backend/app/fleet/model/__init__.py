# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : __init__.py
@Date    : 2025/11/25 10:41
"""
from backend.app.fleet.model.account import Account as Account
from backend.app.fleet.model.account import DeviceOwner as DeviceOwner
from backend.app.fleet.model.device import Device as Device
from backend.app.fleet.model.note import Note as Note
from backend.app.fleet.model.pair_code import PairCode as PairCode
